"""
Community Service

FLOW OVERVIEW
- list_posts(category_id, sort_by, limit, viewer): published, not deleted, sorted newest/oldest/top.
- create_post(user, content, category_id): validated content, existing category.
- toggle_vote(user, post_id, coin_amount): add/remove vote; an added vote may tip the author coins.
- add_comment / list_comments: bounded content, keeps comment_count in step.
- toggle_bookmark(user, post_id)
- delete_post(user, post_id): author or admin, soft delete.

Clients poll list_posts for new content; nothing is pushed.
"""

import logging

from ..models import db, Category, Post, PostVote, Comment, Bookmark
from .coin_ledger import coin_ledger
from .errors import APIError
from .validators import validate_post_content

MAX_POST_LENGTH = 5000
MAX_COMMENT_LENGTH = 2000
MAX_PAGE_SIZE = 100
SORT_OPTIONS = ('newest', 'oldest', 'top')


class CommunityService:
    """Feed reads and writes."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _get_post(post_id, lock=False) -> Post:
        query = Post.query.filter_by(id=post_id, is_deleted=False)
        if lock:
            query = query.with_for_update().populate_existing()
        post = query.first()
        if post is None:
            raise APIError('Post not found', 404, 'POST_NOT_FOUND')
        return post

    def list_posts(self, category_id=None, sort_by='newest', limit=20, offset=0):
        if sort_by not in SORT_OPTIONS:
            sort_by = 'newest'
        limit = max(1, min(int(limit or 20), MAX_PAGE_SIZE))

        query = Post.query.filter_by(is_published=True, is_deleted=False)
        if category_id:
            query = query.filter_by(category_id=category_id)

        if sort_by == 'oldest':
            query = query.order_by(Post.created_at.asc(), Post.id.asc())
        elif sort_by == 'top':
            query = query.order_by(Post.vote_count.desc(), Post.created_at.desc())
        else:
            query = query.order_by(Post.created_at.desc(), Post.id.desc())

        return query.offset(max(0, int(offset or 0))).limit(limit).all()

    def create_post(self, user, content, category_id):
        validation = validate_post_content(content, MAX_POST_LENGTH)
        if not validation.is_valid:
            raise APIError(validation.error_message, 400, 'INVALID_CONTENT')

        if not category_id or db.session.get(Category, category_id) is None:
            raise APIError('Category not found', 400, 'INVALID_CATEGORY')

        post = Post(user_id=user.id, category_id=category_id, content=validation.sanitized_value)
        db.session.add(post)
        db.session.commit()
        self.logger.info(f"User {user.user_id} created post {post.id}")
        return post

    def toggle_vote(self, user, post_id, coin_amount=0):
        """Returns (voted, post). Removing a vote does not return a tip."""
        post = self._get_post(post_id, lock=True)
        if post.user_id == user.id:
            raise APIError('You cannot vote on your own post', 400, 'SELF_VOTE')

        coin_amount = int(coin_amount or 0)
        if coin_amount < 0:
            raise APIError('coinAmount cannot be negative', 400, 'INVALID_NUMBER')

        existing = PostVote.query.filter_by(post_id=post.id, user_id=user.id).first()
        if existing is not None:
            db.session.delete(existing)
            post.vote_count = max(0, (post.vote_count or 0) - 1)
            voted = False
        else:
            db.session.add(PostVote(post_id=post.id, user_id=user.id, coin_amount=coin_amount))
            post.vote_count = (post.vote_count or 0) + 1
            voted = True
            if coin_amount > 0:
                coin_ledger.transfer(
                    user, post.author, coin_amount, 'vote',
                    description=f'Vote on post {post.id}',
                    metadata={'post_id': post.id},
                    commit=False,
                )

        db.session.commit()
        self.logger.info(f"User {user.user_id} {'voted on' if voted else 'removed vote from'} post {post.id}")
        return voted, post

    def list_comments(self, post_id):
        post = self._get_post(post_id)
        return (
            Comment.query.filter_by(post_id=post.id, is_deleted=False)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )

    def add_comment(self, user, post_id, content):
        post = self._get_post(post_id, lock=True)
        content = (content or '').strip()
        if not content:
            raise APIError('Comment content is required', 400, 'INVALID_CONTENT')
        if len(content) > MAX_COMMENT_LENGTH:
            raise APIError(f'Comment must be at most {MAX_COMMENT_LENGTH} characters', 400, 'INVALID_CONTENT')

        comment = Comment(post_id=post.id, user_id=user.id, content=content)
        db.session.add(comment)
        post.comment_count = (post.comment_count or 0) + 1
        db.session.commit()
        return comment

    def toggle_bookmark(self, user, post_id):
        post = self._get_post(post_id)
        existing = Bookmark.query.filter_by(post_id=post.id, user_id=user.id).first()
        if existing is not None:
            db.session.delete(existing)
            bookmarked = False
        else:
            db.session.add(Bookmark(post_id=post.id, user_id=user.id))
            bookmarked = True
        db.session.commit()
        return bookmarked

    def delete_post(self, user, post_id):
        post = self._get_post(post_id)
        if post.user_id != user.id and not user.is_admin():
            raise APIError('You can only delete your own posts', 403, 'FORBIDDEN')
        post.is_deleted = True
        db.session.commit()
        self.logger.info(f"Post {post.id} deleted by user {user.user_id}")


community_service = CommunityService()
