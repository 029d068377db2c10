"""
Post lifecycle: create, update, delete, views, likes and comments.

Validation happens in the request schemas before any of these run, and
ownership is checked before anything is written, so a rejected request never
leaves a partial change behind. Media cleanup after an update or delete is
handed to the MediaCleaner and cannot fail the request.
"""

import logging
import math
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from errors import NotFoundError
from media import media_cleaner
from models import DEFAULT_MEDIA, Comment, Like, Post, db
from permissions import assert_owner

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200


def compute_read_time(content):
    """Minutes to read content at 200 words per minute, never less than 1."""
    word_count = len(content.split())
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def normalize_gallery(items):
    """Gallery entries as stored: order defaults to position, placement to header."""
    gallery = []
    for idx, item in enumerate(items):
        entry = item.model_dump(exclude_none=True)
        entry['order'] = item.order if item.order is not None else idx
        entry['placement'] = item.placement or 'header'
        gallery.append(entry)
    return gallery


def _media_dict(media):
    if media is None:
        return dict(DEFAULT_MEDIA)
    data = media.model_dump(exclude_none=True)
    data.setdefault('url', DEFAULT_MEDIA['url'])
    return data


def get_post_or_404(post_id):
    post = db.session.get(Post, post_id)
    if post is None:
        raise NotFoundError('Blog not found')
    return post


def get_published_or_404(post_id):
    post = get_post_or_404(post_id)
    if not post.is_published:
        raise NotFoundError('Blog not found')
    return post


def create_post(author, data):
    """
    Persist a new post for author.

    Args:
        author: The User writing the post.
        data: A validated PostCreate.

    Returns:
        Post: The saved post.
    """
    now = datetime.utcnow()
    post = Post(
        user_id=author.user_id,
        title=data.title,
        content=data.content,
        excerpt=data.excerpt,
        category=data.category,
        tags=list(data.tags),
        media=_media_dict(data.media),
        media_gallery=normalize_gallery(data.media_gallery),
        status=data.status,
        read_time=compute_read_time(data.content),
        published_at=now if data.status == 'published' else None
    )
    db.session.add(post)
    db.session.commit()

    logger.info(f"Post {post.post_id} created by user {author.user_id} ({post.status})")
    return post


def update_post(post, user, data):
    """
    Apply a validated PostUpdate to post.

    Publishing stamps published_at only when the post was not already
    published; returning to draft clears it; archiving leaves it alone.
    Replacing the primary media schedules removal of the old asset.
    """
    assert_owner(post, user, 'update')

    changes = data.changes()
    old_public_id = (post.media or {}).get('public_id')

    for field in ('title', 'content', 'excerpt', 'category'):
        if field in changes:
            setattr(post, field, changes[field])
    if 'tags' in changes:
        post.tags = list(changes['tags'])
    if 'media_gallery' in changes:
        post.media_gallery = normalize_gallery(data.media_gallery)
    if 'media' in changes:
        post.media = _media_dict(data.media)

    if 'status' in changes:
        new_status = changes['status']
        if new_status == 'published' and post.status != 'published':
            post.published_at = datetime.utcnow()
        elif new_status == 'draft':
            post.published_at = None
        post.status = new_status

    if 'content' in changes:
        post.read_time = compute_read_time(post.content)

    db.session.commit()
    logger.info(f"Post {post.post_id} updated by user {user.user_id}: {sorted(changes)}")

    if 'media' in changes and old_public_id and post.media.get('public_id') != old_public_id:
        media_cleaner.schedule(old_public_id, reason=f"media replaced on post {post.post_id}")

    return post


def delete_post(post, user):
    """Remove post with its likes and comments after queueing its media for deletion."""
    assert_owner(post, user, 'delete')

    post_id = post.post_id
    public_id = (post.media or {}).get('public_id')
    if public_id:
        media_cleaner.schedule(public_id, reason=f"post {post_id} deleted")

    Like.query.filter_by(post_id=post_id).delete()
    Comment.query.filter_by(post_id=post_id).delete()
    db.session.delete(post)
    db.session.commit()
    logger.info(f"Post {post_id} deleted by user {user.user_id}")


def record_view(post, viewer):
    """Count one view of a published post unless the viewer wrote it."""
    if not post.is_published or post.is_owned_by(viewer):
        return False
    Post.query.filter_by(post_id=post.post_id).update(
        {Post.views: Post.views + 1}, synchronize_session=False)
    db.session.commit()
    db.session.refresh(post)
    return True


def toggle_like(post, user):
    """
    Flip user's like on post.

    Returns:
        tuple: (is_liked, like_count) after the flip.
    """
    existing = Like.query.filter_by(post_id=post.post_id, user_id=user.user_id).first()
    if existing:
        db.session.delete(existing)
    else:
        db.session.add(Like(post_id=post.post_id, user_id=user.user_id))

    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent toggle inserted the same like first; keep what is stored.
        db.session.rollback()
        logger.warning(f"Concurrent like on post {post.post_id} by user {user.user_id}")

    liked = post.is_liked_by(user)
    return liked, post.likes.count()


def add_comment(post, user, data):
    """Append a comment to a published post."""
    if not post.is_published:
        raise NotFoundError('Blog not found')

    comment = Comment(
        post_id=post.post_id,
        user_id=user.user_id,
        content=data.content,
        created_at=datetime.utcnow()
    )
    db.session.add(comment)
    db.session.commit()
    logger.info(f"Comment {comment.comment_id} added to post {post.post_id} by user {user.user_id}")
    return comment
