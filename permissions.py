# Ownership and visibility checks for posts
from errors import AuthorizationError, NotFoundError


def assert_owner(post, user, action='update'):
    """Raise AuthorizationError unless user wrote post."""
    if not post.is_owned_by(user):
        raise AuthorizationError(f"Not authorized to {action} this blog")


def assert_visible(post, viewer):
    """
    Unpublished posts exist only for their owner.

    Everyone else gets NotFoundError rather than a 403 so that drafts do not
    leak their existence.
    """
    if not post.is_published and not post.is_owned_by(viewer):
        raise NotFoundError('Blog not found')
