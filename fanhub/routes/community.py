"""
Community Routes

FLOW OVERVIEW
- /api/community/categories [GET]
- /api/community/posts [GET, POST]
  • List (?categoryId=&sortBy=newest|oldest|top&limit=) / create {content, categoryId}.
- /api/community/posts/vote [POST]
  • {postId, coinAmount?} → toggle vote, optional coin tip to the author.
- /api/community/posts/<id>/comments [GET, POST]
- /api/community/posts/<id>/bookmark [POST]
- /api/community/posts/<id> [DELETE]
"""

from flask import Blueprint, g, jsonify, request

from ..models import Category
from ..utils.api_utils import request_validator
from ..utils.auth_utils import get_current_user, login_required
from ..utils.community_service import community_service

community_bp = Blueprint('community', __name__)


@community_bp.route('/community/categories', methods=['GET'])
def list_categories():
    categories = Category.query.order_by(Category.name).all()
    return jsonify({'success': True, 'categories': [category.to_dict() for category in categories]})


@community_bp.route('/community/posts', methods=['GET'])
def list_posts():
    viewer = get_current_user()
    posts = community_service.list_posts(
        category_id=request_validator.get_int(request.args, 'categoryId'),
        sort_by=request.args.get('sortBy', 'newest'),
        limit=request_validator.get_int(request.args, 'limit', minimum=1, default=20),
        offset=request_validator.get_int(request.args, 'offset', minimum=0, default=0),
    )
    return jsonify({'success': True, 'posts': [post.to_dict(viewer=viewer) for post in posts]})


@community_bp.route('/community/posts', methods=['POST'])
@login_required
def create_post():
    data = request_validator.get_json_object()
    post = community_service.create_post(
        g.current_user,
        data.get('content'),
        request_validator.get_int(data, 'categoryId'),
    )
    return jsonify({'success': True, 'post': post.to_dict(viewer=g.current_user)}), 201


@community_bp.route('/community/posts/vote', methods=['POST'])
@login_required
def vote_on_post():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['postId'])

    voted, post = community_service.toggle_vote(
        g.current_user,
        request_validator.get_int(data, 'postId'),
        request_validator.get_int(data, 'coinAmount', minimum=0, default=0),
    )
    return jsonify({
        'success': True,
        'voted': voted,
        'vote_count': post.vote_count,
        'new_balance': g.current_user.coins,
    })


@community_bp.route('/community/posts/<int:post_id>/comments', methods=['GET'])
def list_comments(post_id):
    comments = community_service.list_comments(post_id)
    return jsonify({'success': True, 'comments': [comment.to_dict() for comment in comments]})


@community_bp.route('/community/posts/<int:post_id>/comments', methods=['POST'])
@login_required
def add_comment(post_id):
    data = request_validator.get_json_object()
    comment = community_service.add_comment(g.current_user, post_id, data.get('content'))
    return jsonify({'success': True, 'comment': comment.to_dict()}), 201


@community_bp.route('/community/posts/<int:post_id>/bookmark', methods=['POST'])
@login_required
def toggle_bookmark(post_id):
    bookmarked = community_service.toggle_bookmark(g.current_user, post_id)
    return jsonify({'success': True, 'bookmarked': bookmarked})


@community_bp.route('/community/posts/<int:post_id>', methods=['DELETE'])
@login_required
def delete_post(post_id):
    community_service.delete_post(g.current_user, post_id)
    return jsonify({'success': True, 'message': 'Post deleted'})
