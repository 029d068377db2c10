# Database models
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

CATEGORIES = [
    'Technology', 'Design', 'Development', 'Business', 'Lifestyle', 'Travel',
    'Food', 'Health', 'Education', 'Entertainment', 'Other'
]

DEFAULT_MEDIA_URL = 'https://images.unsplash.com/photo-1486312338219-ce68d2c6f44d?w=600&h=400&fit=crop'
DEFAULT_MEDIA = {'type': 'none', 'url': DEFAULT_MEDIA_URL}
DEFAULT_NOTIFICATION_PREFERENCES = {'email': True, 'push': True, 'comments': True, 'follows': True}


def _isoformat(value):
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = 'Users'
    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(30), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    bio = db.Column(db.String(500), nullable=False, default='')
    avatar = db.Column(db.JSON)
    social_links = db.Column(db.JSON, nullable=False, default=dict)
    role = db.Column(db.String(20), nullable=False, default='user')
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    notification_preferences = db.Column(
        db.JSON, nullable=False, default=lambda: dict(DEFAULT_NOTIFICATION_PREFERENCES))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    posts = db.relationship('Post', backref='author', lazy='dynamic')
    comments = db.relationship('Comment', backref='author', lazy='dynamic')
    likes = db.relationship('Like', backref='user', lazy='dynamic')

    def followers(self):
        """Users following this user, oldest relation first."""
        return User.query.join(Follower, Follower.follower_user_id == User.user_id)\
            .filter(Follower.followed_user_id == self.user_id)\
            .order_by(Follower.created_at.asc(), Follower.follower_id.asc())\
            .all()

    def following(self):
        """Users this user follows, oldest relation first."""
        return User.query.join(Follower, Follower.followed_user_id == User.user_id)\
            .filter(Follower.follower_user_id == self.user_id)\
            .order_by(Follower.created_at.asc(), Follower.follower_id.asc())\
            .all()

    def is_following(self, other):
        return Follower.query.filter_by(
            follower_user_id=self.user_id,
            followed_user_id=other.user_id
        ).first() is not None

    def summary(self):
        return {
            "user_id": self.user_id,
            "username": self.username,
            "full_name": self.full_name,
            "avatar": self.avatar
        }

    def public_profile(self):
        """Profile fields anybody may see, with populated relation lists."""
        return {
            **self.summary(),
            "bio": self.bio,
            "social_links": self.social_links or {},
            "followers": [u.summary() for u in self.followers()],
            "following": [u.summary() for u in self.following()],
            "created_at": _isoformat(self.created_at)
        }

    def private_profile(self):
        """Public profile plus the fields only the account owner sees."""
        return {
            **self.public_profile(),
            "email": self.email,
            "role": self.role,
            "is_verified": self.is_verified,
            "notification_preferences": self.notification_preferences or {}
        }


class Post(db.Model):
    __tablename__ = 'Posts'
    post_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('Users.user_id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.String(300), nullable=False)
    category = db.Column(db.String(30), nullable=False, default='Other', index=True)
    media = db.Column(db.JSON, nullable=False, default=lambda: dict(DEFAULT_MEDIA))
    media_gallery = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(20), nullable=False, default='draft', index=True)
    published_at = db.Column(db.DateTime, nullable=True)
    read_time = db.Column(db.Integer, nullable=False, default=1)
    views = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    comments = db.relationship('Comment', backref='post', lazy='dynamic',
                               order_by=lambda: [Comment.created_at, Comment.comment_id])
    likes = db.relationship('Like', backref='post', lazy='dynamic')
    tag_rows = db.relationship('PostTag', lazy='selectin', cascade='all, delete-orphan',
                               order_by=lambda: PostTag.position)

    @property
    def tags(self):
        return [row.name for row in self.tag_rows]

    @tags.setter
    def tags(self, names):
        self.tag_rows = [PostTag(name=name, position=idx) for idx, name in enumerate(names)]

    @property
    def is_published(self):
        return self.status == 'published'

    def is_owned_by(self, user):
        return user is not None and self.user_id == user.user_id

    def is_liked_by(self, user):
        if user is None:
            return False
        return self.likes.filter_by(user_id=user.user_id).first() is not None

    def to_dict(self, viewer=None, include_comments=False, liked=None):
        data = {
            "post_id": self.post_id,
            "title": self.title,
            "content": self.content,
            "excerpt": self.excerpt,
            "category": self.category,
            "tags": self.tags,
            "media": self.media or dict(DEFAULT_MEDIA),
            "media_gallery": self.media_gallery or [],
            "status": self.status,
            "published_at": _isoformat(self.published_at),
            "read_time": self.read_time,
            "views": self.views,
            "like_count": self.likes.count(),
            "comment_count": self.comments.count(),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
            "author": self.author.summary()
        }
        if viewer is not None:
            data["is_liked"] = liked if liked is not None else self.is_liked_by(viewer)
        if include_comments:
            data["comments"] = [comment.to_dict() for comment in self.comments]
        return data


class PostTag(db.Model):
    __tablename__ = 'PostTags'
    post_tag_id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('Posts.post_id'), nullable=False, index=True)
    name = db.Column(db.String(20), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)


class Comment(db.Model):
    __tablename__ = 'Comments'
    comment_id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('Posts.post_id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('Users.user_id'), nullable=False)
    content = db.Column(db.String(1000), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "comment_id": self.comment_id,
            "content": self.content,
            "created_at": _isoformat(self.created_at),
            "author": self.author.summary()
        }


class Like(db.Model):
    __tablename__ = 'Likes'
    like_id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('Posts.post_id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('Users.user_id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('post_id', 'user_id', name='uq_like_post_user'),)


class Follower(db.Model):
    __tablename__ = 'Followers'
    follower_id = db.Column(db.Integer, primary_key=True)
    follower_user_id = db.Column(db.Integer, db.ForeignKey('Users.user_id'), nullable=False)
    followed_user_id = db.Column(db.Integer, db.ForeignKey('Users.user_id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('follower_user_id', 'followed_user_id', name='uq_follower_pair'),
        db.CheckConstraint('follower_user_id != followed_user_id', name='ck_follower_not_self'),
    )
