"""
Feature Flag Routes

FLOW OVERVIEW
- /api/flags [GET]
  • {key: bool} for the caller in the running environment.
- /api/admin/flags [GET, POST], /api/admin/flags/<key> [PATCH, DELETE]
  • Admin management.
"""

from flask import Blueprint, current_app, jsonify

from ..models import FeatureFlag
from ..utils.api_utils import request_validator
from ..utils.auth_utils import admin_required, get_current_user
from ..utils.feature_flags import evaluate_all, flag_service

flags_bp = Blueprint('flags', __name__)


@flags_bp.route('/flags', methods=['GET'])
def my_flags():
    environment = current_app.config.get('APP_ENVIRONMENT', 'production')
    return jsonify({'success': True, 'flags': evaluate_all(get_current_user(), environment)})


@flags_bp.route('/admin/flags', methods=['GET'])
@admin_required
def list_flags():
    flags = FeatureFlag.query.order_by(FeatureFlag.key).all()
    return jsonify({'success': True, 'flags': [flag.to_dict() for flag in flags]})


@flags_bp.route('/admin/flags', methods=['POST'])
@admin_required
def create_flag():
    flag = flag_service.create(request_validator.get_json_object())
    return jsonify({'success': True, 'flag': flag.to_dict()}), 201


@flags_bp.route('/admin/flags/<key>', methods=['PATCH'])
@admin_required
def update_flag(key):
    flag = flag_service.update(key, request_validator.get_json_object())
    return jsonify({'success': True, 'flag': flag.to_dict()})


@flags_bp.route('/admin/flags/<key>', methods=['DELETE'])
@admin_required
def delete_flag(key):
    flag_service.delete(key)
    return jsonify({'success': True, 'message': 'Flag deleted'})
