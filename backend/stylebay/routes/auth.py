from flask import Blueprint, jsonify, current_app

from ._helpers import request_data, services

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    """注册新用户"""
    user = services()['auth'].register(request_data())
    current_app.logger.info('user_registered id=%s', user['id'])
    return jsonify({'message': 'Registration successful!', 'user': user}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """登录"""
    data = request_data()
    user = services()['auth'].login(data.get('email'), data.get('password'))
    return jsonify({'message': 'Login successful!', 'user': user})


@auth_bp.route('/user/<user_id>', methods=['GET'])
def get_user(user_id):
    """获取用户资料 (不含密码)"""
    return jsonify(services()['auth'].get_user(user_id))
