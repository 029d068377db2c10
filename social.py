"""
Follow relationships between users.

A relation is a single Follower row, so a user's ``following`` list and the
other user's ``followers`` list are two views of the same write and cannot
drift apart.
"""

import logging

from sqlalchemy.exc import IntegrityError

from errors import ConflictError, NotFoundError, ValidationError
from models import Follower, User, db

logger = logging.getLogger(__name__)


def get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError('User not found')
    return user


def follow(user, target):
    """Make user follow target. Following yourself or following twice is rejected."""
    if user.user_id == target.user_id:
        raise ValidationError('You cannot follow yourself')
    if user.is_following(target):
        raise ConflictError('Already following this user')

    db.session.add(Follower(follower_user_id=user.user_id, followed_user_id=target.user_id))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('Already following this user')

    logger.info(f"User {user.user_id} followed user {target.user_id}")


def unfollow(user, target):
    """Stop user following target; does nothing if they were not following."""
    removed = Follower.query.filter_by(
        follower_user_id=user.user_id,
        followed_user_id=target.user_id
    ).delete()
    db.session.commit()

    if removed:
        logger.info(f"User {user.user_id} unfollowed user {target.user_id}")
    return bool(removed)
