import logging
from functools import wraps
from flask import Blueprint, request, jsonify, current_app, session
from flask_login import login_user, logout_user, current_user
from models import db, User

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

def role_required(*roles, error='Access denied'):
    """Require a logged-in user whose role is one of ``roles``"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'success': False, 'error': 'Authentication required'}), 401
            if current_user.role not in roles:
                return jsonify({'success': False, 'error': error}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator

admin_required = role_required('admin', error='Admin access required')
instructor_required = role_required('instructor', 'admin', error='Instructor access required')
student_required = role_required('student', error='Student access required')

@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email')
    password = data.get('password')

    if not email or not password:
        return jsonify({'success': False, 'error': 'Email and password are required'}), 400

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        logger.warning(f"Failed login attempt for {email}")
        return jsonify({'success': False, 'error': 'Invalid email or password'}), 401

    session.permanent = True
    login_user(user)
    logger.info(f"User {user.email} logged in as {user.role}")

    return jsonify({'success': True, 'data': user.session_dict()})

@auth_bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    session.clear()
    return jsonify({'success': True, 'message': 'Logged out successfully'})

@auth_bp.route('/me')
def me():
    if not current_user.is_authenticated:
        return jsonify({'success': False, 'error': 'Not authenticated'}), 401

    return jsonify({'success': True, 'data': current_user.session_dict()})

@auth_bp.route('/register', methods=['POST'])
def register():
    """Student self-registration; the role is always student"""
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    email = data.get('email')
    password = data.get('password')

    if not name or not email or not password:
        return jsonify({'success': False, 'error': 'Name, email and password are required'}), 400

    domain = current_app.config['STUDENT_EMAIL_DOMAIN']
    if not email.endswith(domain):
        return jsonify({
            'success': False,
            'error': f'Student registration is only allowed with {domain} email addresses'
        }), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'success': False, 'error': 'This email address is already in use'}), 409

    student = User(
        name=name,
        email=email,
        role='student'
    )
    student.set_password(password)

    try:
        db.session.add(student)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Registration error: {e}")
        return jsonify({'success': False, 'error': 'Registration failed'}), 500

    session.permanent = True
    login_user(student)
    logger.info(f"Student {email} registered")

    return jsonify({
        'success': True,
        'data': student.session_dict(),
        'message': 'Registration successful'
    }), 201
