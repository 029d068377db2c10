"""
Listing queries for posts.

Turns a validated PostListQuery into SQLAlchemy filter criteria and an
ordering, then runs the page and count queries against the same filters.
"""

import logging
import math

from sqlalchemy import or_

from models import Like, Post, PostTag

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    'newest': lambda: [Post.published_at.desc(), Post.post_id.desc()],
    'oldest': lambda: [Post.published_at.asc(), Post.post_id.asc()],
    'popular': lambda: [Post.views.desc(), Post.post_id.desc()],
    # trending has no signal of its own yet, so it shares the popular ordering
    'trending': lambda: [Post.views.desc(), Post.post_id.desc()],
}


def build_filters(params, author_id=None, published_only=True):
    """
    Build the WHERE criteria for a post listing.

    Args:
        params: A validated PostListQuery.
        author_id: Restrict to posts written by this user.
        published_only: Restrict to published posts (public listings).

    Returns:
        list: SQLAlchemy criteria to pass to filter().
    """
    filters = []
    if published_only:
        filters.append(Post.status == 'published')
    if author_id is not None:
        filters.append(Post.user_id == author_id)
    if params.category:
        filters.append(Post.category == params.category)
    if params.search:
        term = params.search
        filters.append(or_(
            Post.title.icontains(term, autoescape=True),
            Post.excerpt.icontains(term, autoescape=True),
            Post.content.icontains(term, autoescape=True),
            Post.tag_rows.any(PostTag.name.icontains(term, autoescape=True)),
        ))
    return filters


def build_ordering(sort):
    return SORT_ORDERS.get(sort, SORT_ORDERS['newest'])()


def paginate_posts(params, viewer=None, author_id=None, published_only=True):
    """
    Run a paginated post listing.

    Returns:
        dict: ``blogs`` (serialized page), ``total``, ``total_pages`` and
        ``current_page``.
    """
    filters = build_filters(params, author_id=author_id, published_only=published_only)
    query = Post.query.filter(*filters)

    total = query.count()
    posts = query.order_by(*build_ordering(params.sort))\
        .offset((params.page - 1) * params.limit)\
        .limit(params.limit)\
        .all()

    logger.debug(f"Found {len(posts)} blogs out of {total} total "
                 f"(page={params.page}, limit={params.limit}, sort={params.sort})")

    liked_ids = set()
    if viewer is not None and posts:
        liked_ids = {
            like.post_id for like in Like.query.filter(
                Like.user_id == viewer.user_id,
                Like.post_id.in_([post.post_id for post in posts])
            )
        }

    return {
        "blogs": [
            post.to_dict(viewer=viewer, liked=post.post_id in liked_ids)
            for post in posts
        ],
        "total": total,
        "total_pages": math.ceil(total / params.limit),
        "current_page": params.page
    }
