# Routes for handling requests
import json
import logging
import time
from datetime import datetime

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user
from sqlalchemy import or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth import (
    auth_required,
    check_password,
    current_identity,
    hash_password,
    issue_token,
    optional_auth,
    revoke_token,
)
from errors import AuthenticationError, ConflictError, NotFoundError, UnexpectedError, ValidationError
from media import (
    AVATAR_MAX_SIZE,
    IMAGE_MAX_SIZE,
    VIDEO_MAX_SIZE,
    check_image,
    check_video,
    is_image,
    is_video,
    media_cleaner,
    media_store,
)
from models import Post, User, db
from permissions import assert_visible
from posts import (
    add_comment,
    create_post,
    delete_post,
    get_post_or_404,
    get_published_or_404,
    record_view,
    toggle_like,
    update_post,
)
from queries import paginate_posts
from schemas import (
    CommentCreate,
    LoginRequest,
    PostCreate,
    PostListQuery,
    PostUpdate,
    ProfileUpdate,
    SignupRequest,
)
from social import follow, get_user_or_404, unfollow

logger = logging.getLogger(__name__)

STARTED_AT = time.time()

# Create blueprints for different route categories
main_bp = Blueprint('main', __name__)
users_bp = Blueprint('users', __name__)
blogs_bp = Blueprint('blogs', __name__)
media_bp = Blueprint('media', __name__)

# Fields that arrive JSON-encoded inside multipart form bodies
FORM_JSON_FIELDS = ('social_links', 'socialLinks', 'notification_preferences', 'notificationPreferences')


def success(data=None, message=None, status=200):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def request_payload():
    """The request body as a dict, from JSON or from multipart/form fields."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            raise ValidationError('Request body must be valid JSON')
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')
        return data

    data = request.form.to_dict()
    for key in FORM_JSON_FIELDS:
        if isinstance(data.get(key), str):
            try:
                data[key] = json.loads(data[key])
            except ValueError:
                raise ValidationError(f"Invalid {key} format")
    return data


def upload_file(file, folder, kind, failure_message):
    try:
        return media_store.store(file, folder, kind)
    except Exception as e:
        logger.exception(f"Media upload to {folder} failed: {e}")
        raise UnexpectedError(failure_message) from e


def avatar_from_upload(file):
    check_image(file, AVATAR_MAX_SIZE, 'Avatar')
    result = upload_file(file, 'avatars', 'image', 'Failed to upload avatar')
    return {
        "url": result['url'],
        "public_id": result['public_id'],
        "format": result['format'],
        "size": result['size']
    }


# -----------------------------------------------------------------------------
# Service endpoints
# -----------------------------------------------------------------------------

@main_bp.route('/', methods=['GET'])
def health():
    """Liveness and database status"""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'connected'
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database = 'disconnected'

    return jsonify({
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "uptime": round(time.time() - STARTED_AT, 3),
        "database": database
    }), 200


@main_bp.route('/api', methods=['GET'])
def api_index():
    """Welcome page for the API"""
    return jsonify({
        "success": True,
        "message": "Welcome to BlogSpace API",
        "version": "1.0.0",
        "endpoints": {
            "users": "/api/v1/users",
            "blogs": "/api/v1/blogs",
            "media": "/api/v1/media",
            "health": "/"
        }
    }), 200


# -----------------------------------------------------------------------------
# Authentication Endpoints
# -----------------------------------------------------------------------------

@users_bp.route('/signup', methods=['POST'])
def signup():
    """User Registration Endpoint"""
    data = SignupRequest.model_validate(request_payload())

    existing_user = User.query.filter(
        or_(User.email == data.email, User.username == data.username)
    ).first()
    if existing_user:
        raise ConflictError('Email or username already exists')

    avatar = None
    avatar_file = request.files.get('avatar')
    if avatar_file:
        avatar = avatar_from_upload(avatar_file)

    new_user = User(
        username=data.username,
        full_name=data.full_name,
        email=data.email,
        password_hash=hash_password(data.password),
        bio=data.bio,
        social_links=data.social_links,
        avatar=avatar
    )

    try:
        db.session.add(new_user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if avatar:
            media_cleaner.schedule(avatar['public_id'], reason='signup rejected')
        raise ConflictError('Email or username already exists')

    logger.info(f"User {new_user.user_id} registered as {new_user.username}")
    return success({
        "token": issue_token(new_user),
        "user": new_user.private_profile()
    }, "User registered successfully", 201)


@users_bp.route('/login', methods=['POST'])
def login():
    """User Login Endpoint"""
    data = LoginRequest.model_validate(request_payload())

    user = User.query.filter_by(email=data.email).first()
    if not user or not check_password(user, data.password):
        logger.info(f"Failed login for {data.email}")
        raise AuthenticationError('Invalid credentials')

    return success({
        "token": issue_token(user),
        "user": user.private_profile()
    }, "Login successful")


@users_bp.route('/logout', methods=['POST'])
@auth_required
def logout():
    revoke_token()
    return success(message="Logged out successfully")


# -----------------------------------------------------------------------------
# User Endpoints
# -----------------------------------------------------------------------------

@users_bp.route('/me', methods=['GET'])
@auth_required
def me():
    """Get current user's profile"""
    return success(current_user.private_profile())


@users_bp.route('/id/<int:user_id>', methods=['GET'])
def get_user_by_id(user_id):
    return success(get_user_or_404(user_id).public_profile())


@users_bp.route('/profile', methods=['PUT'])
@auth_required
def update_profile():
    """Update current user's profile"""
    data = ProfileUpdate.model_validate(request_payload())
    user = current_user

    old_avatar_id = None
    avatar_file = request.files.get('avatar')
    if avatar_file:
        old_avatar_id = (user.avatar or {}).get('public_id')
        user.avatar = avatar_from_upload(avatar_file)

    for field in ('full_name', 'bio', 'social_links', 'notification_preferences'):
        value = getattr(data, field)
        if value is not None:
            setattr(user, field, value)

    db.session.commit()

    if old_avatar_id:
        media_cleaner.schedule(old_avatar_id, reason=f"avatar replaced for user {user.user_id}")

    return success({"user": user.private_profile()}, "Profile updated successfully")


@users_bp.route('/profile-image', methods=['GET'])
@auth_required
def profile_image():
    if not current_user.avatar:
        raise NotFoundError('Profile image not found')
    return success(current_user.avatar)


@users_bp.route('/follow/<int:user_id>', methods=['POST'])
@auth_required
def follow_user(user_id):
    target = get_user_or_404(user_id)
    follow(current_user, target)
    return success(message="User followed successfully")


@users_bp.route('/unfollow/<int:user_id>', methods=['POST'])
@auth_required
def unfollow_user(user_id):
    target = get_user_or_404(user_id)
    unfollow(current_user, target)
    return success(message="User unfollowed successfully")


@users_bp.route('/<username>', methods=['GET'])
def get_user_by_username(username):
    user = User.query.filter_by(username=username).first()
    if not user:
        raise NotFoundError('User not found')
    return success(user.public_profile())


# -----------------------------------------------------------------------------
# Blog Endpoints
# -----------------------------------------------------------------------------

@blogs_bp.route('', methods=['GET'])
@optional_auth
def list_blogs():
    """Published blogs with pagination, category, search and sort"""
    params = PostListQuery.model_validate(request.args.to_dict())
    return success(paginate_posts(params, viewer=current_identity()))


@blogs_bp.route('', methods=['POST'])
@auth_required
def create_blog():
    data = PostCreate.model_validate(request_payload())
    post = create_post(current_user, data)
    return success({"blog": post.to_dict(viewer=current_user)}, "Blog created successfully", 201)


@blogs_bp.route('/my-posts', methods=['GET'])
@auth_required
def my_posts():
    posts = Post.query.filter_by(user_id=current_user.user_id)\
        .order_by(Post.created_at.desc(), Post.post_id.desc())\
        .all()
    return success({"blogs": [post.to_dict(viewer=current_user) for post in posts]})


@blogs_bp.route('/user/<int:user_id>', methods=['GET'])
@optional_auth
def user_blogs(user_id):
    get_user_or_404(user_id)
    params = PostListQuery.model_validate(
        {"page": request.args.get('page'), "limit": request.args.get('limit'), "sort": "newest"})
    return success(paginate_posts(params, viewer=current_identity(), author_id=user_id))


@blogs_bp.route('/<int:post_id>', methods=['GET'])
@optional_auth
def get_blog(post_id):
    viewer = current_identity()
    post = get_post_or_404(post_id)
    assert_visible(post, viewer)
    record_view(post, viewer)
    return success({"blog": post.to_dict(viewer=viewer, include_comments=True)})


@blogs_bp.route('/<int:post_id>', methods=['PUT'])
@auth_required
def update_blog(post_id):
    data = PostUpdate.model_validate(request_payload())
    post = update_post(get_post_or_404(post_id), current_user, data)
    return success({"blog": post.to_dict(viewer=current_user)}, "Blog updated successfully")


@blogs_bp.route('/<int:post_id>', methods=['DELETE'])
@auth_required
def delete_blog(post_id):
    delete_post(get_post_or_404(post_id), current_user)
    return success(message="Blog deleted successfully")


@blogs_bp.route('/<int:post_id>/like', methods=['POST'])
@auth_required
def like_blog(post_id):
    liked, like_count = toggle_like(get_published_or_404(post_id), current_user)
    return success({"is_liked": liked, "like_count": like_count}, "Like toggled successfully")


@blogs_bp.route('/<int:post_id>/comments', methods=['POST'])
@auth_required
def comment_on_blog(post_id):
    data = CommentCreate.model_validate(request_payload())
    comment = add_comment(get_post_or_404(post_id), current_user, data)
    return success({"comment": comment.to_dict()}, "Comment added successfully", 201)


# -----------------------------------------------------------------------------
# Media Endpoints
# -----------------------------------------------------------------------------

def uploaded_file():
    file = request.files.get('file')
    if not file:
        raise ValidationError('No file uploaded')
    return file


@media_bp.route('/upload-image', methods=['POST'])
@auth_required
def upload_image():
    file = uploaded_file()
    check_image(file, IMAGE_MAX_SIZE)
    media = upload_file(file, 'images', 'image', 'Failed to upload image')
    return success({"media": media}, "Image uploaded successfully")


@media_bp.route('/upload-video', methods=['POST'])
@auth_required
def upload_video():
    file = uploaded_file()
    check_video(file, VIDEO_MAX_SIZE)
    media = upload_file(file, 'videos', 'video', 'Failed to upload video')
    return success({"media": media}, "Video uploaded successfully")


@media_bp.route('/upload-avatar', methods=['POST'])
@auth_required
def upload_avatar():
    avatar = avatar_from_upload(uploaded_file())
    return success({"avatar": avatar}, "Avatar uploaded successfully")


@media_bp.route('/upload-blog-media', methods=['POST'])
@auth_required
def upload_blog_media():
    """Image or video for a post body or gallery"""
    file = uploaded_file()
    if is_image(file):
        check_image(file, IMAGE_MAX_SIZE)
        media = upload_file(file, 'blog-images', 'image', 'Failed to upload media')
    elif is_video(file):
        check_video(file, VIDEO_MAX_SIZE)
        media = upload_file(file, 'blog-videos', 'video', 'Failed to upload media')
    else:
        raise ValidationError('Invalid file type. Only images and videos are allowed.')
    return success({"media": media}, "Media uploaded successfully")


@media_bp.route('/<path:public_id>', methods=['DELETE'])
@auth_required
def delete_media(public_id):
    try:
        result = media_store.delete(public_id)
    except Exception as e:
        logger.exception(f"Deleting media {public_id} failed: {e}")
        raise UnexpectedError('Failed to delete file') from e
    return success({"result": result}, "File deleted successfully")
