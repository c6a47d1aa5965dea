import logging
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from sqlalchemy.exc import IntegrityError
from models import db, User, Faculty, Department, Course
from auth import admin_required
from utils import parse_int, delete_stored_file

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api')

def _user_affiliation(data):
    """Validate the optional facultyId/departmentId of a user payload"""
    raw_faculty, raw_department = data.get('facultyId'), data.get('departmentId')
    faculty_id = parse_int(raw_faculty) if raw_faculty not in (None, '') else None
    department_id = parse_int(raw_department) if raw_department not in (None, '') else None

    if (raw_faculty not in (None, '') and faculty_id is None) or \
            (raw_department not in (None, '') and department_id is None):
        return None, (jsonify({'success': False, 'error': 'Invalid facultyId or departmentId'}), 400)

    if faculty_id is not None and not db.session.get(Faculty, faculty_id):
        return None, (jsonify({'success': False, 'error': 'Faculty not found'}), 404)

    if department_id is not None:
        department = db.session.get(Department, department_id)
        if not department:
            return None, (jsonify({'success': False, 'error': 'Department not found'}), 404)
        if faculty_id is not None and department.faculty_id != faculty_id:
            return None, (jsonify({'success': False, 'error': 'Department does not belong to this faculty'}), 400)

    return (faculty_id, department_id), None

# USER MANAGEMENT
@admin_bp.route('/users')
@admin_required
def list_users():
    users = User.query.order_by(User.role, User.name).all()
    return jsonify({'success': True, 'data': [user.to_dict() for user in users]})

@admin_bp.route('/users/<int:user_id>')
@admin_required
def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404

    return jsonify({'success': True, 'data': user.to_dict()})

@admin_bp.route('/users', methods=['POST'])
@admin_required
def create_user():
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    email = data.get('email')
    password = data.get('password')
    role = data.get('role')

    if not name or not email or not password or not role:
        return jsonify({'success': False, 'error': 'Name, email, password and role are required'}), 400

    if role not in current_app.config['ROLES']:
        return jsonify({'success': False, 'error': 'Role must be admin, instructor or student'}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'success': False, 'error': 'This email is already in use'}), 409

    affiliation, error = _user_affiliation(data)
    if error:
        return error
    faculty_id, department_id = affiliation

    user = User(
        name=name,
        email=email,
        role=role,
        faculty_id=faculty_id,
        department_id=department_id
    )
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating user: {e}")
        return jsonify({'success': False, 'error': 'Could not create user'}), 500

    logger.info(f"Admin {current_user.email} created {role} {email}")
    return jsonify({'success': True, 'data': user.to_dict()}), 201

@admin_bp.route('/users/<int:user_id>', methods=['PUT'])
@admin_required
def edit_user(user_id):
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    email = data.get('email')
    role = data.get('role')

    if not name or not email or not role:
        return jsonify({'success': False, 'error': 'Name, email and role are required'}), 400

    if role not in current_app.config['ROLES']:
        return jsonify({'success': False, 'error': 'Role must be admin, instructor or student'}), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404

    existing_user = User.query.filter_by(email=email).first()
    if existing_user and existing_user.id != user.id:
        return jsonify({'success': False, 'error': 'Email is used by another user'}), 409

    affiliation, error = _user_affiliation(data)
    if error:
        return error

    user.name = name
    user.email = email
    user.role = role
    user.faculty_id, user.department_id = affiliation

    # Only update if provided
    new_password = data.get('password')
    if new_password:
        user.set_password(new_password)

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating user: {e}")
        return jsonify({'success': False, 'error': 'Could not update user'}), 500

    return jsonify({'success': True, 'data': user.to_dict()})

@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    if user_id == current_user.id:
        return jsonify({'success': False, 'error': 'Cannot delete your own account'}), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404

    if user.courses_taught or user.uploaded_materials:
        return jsonify({
            'success': False,
            'error': 'User still teaches courses or owns course materials'
        }), 409

    note_files = [(note.course_id, note.stored_name) for note in user.lecture_notes]

    try:
        db.session.delete(user)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting user: {e}")
        return jsonify({'success': False, 'error': 'Failed to delete user'}), 500

    for course_id, stored_name in note_files:
        delete_stored_file(course_id, stored_name)

    logger.info(f"Admin {current_user.email} deleted user {user_id}")
    return jsonify({'success': True, 'message': 'User deleted successfully'})

# FACULTY MANAGEMENT
@admin_bp.route('/faculties', methods=['POST'])
@admin_required
def create_faculty():
    data = request.get_json(silent=True) or {}
    name = data.get('name')

    if not name:
        return jsonify({'success': False, 'error': 'Faculty name is required'}), 400

    if Faculty.query.filter_by(name=name).first():
        return jsonify({'success': False, 'error': 'Faculty with this name already exists'}), 409

    faculty = Faculty(name=name)
    db.session.add(faculty)
    db.session.commit()

    return jsonify({
        'success': True,
        'data': faculty.to_dict(),
        'message': 'Faculty created successfully'
    }), 201

@admin_bp.route('/faculties/<int:faculty_id>', methods=['PUT'])
@admin_required
def edit_faculty(faculty_id):
    data = request.get_json(silent=True) or {}
    name = data.get('name')

    if not name:
        return jsonify({'success': False, 'error': 'Faculty name is required'}), 400

    faculty = db.session.get(Faculty, faculty_id)
    if not faculty:
        return jsonify({'success': False, 'error': 'Faculty not found'}), 404

    existing = Faculty.query.filter_by(name=name).first()
    if existing and existing.id != faculty.id:
        return jsonify({'success': False, 'error': 'Faculty with this name already exists'}), 409

    faculty.name = name
    db.session.commit()

    return jsonify({
        'success': True,
        'data': faculty.to_dict(),
        'message': 'Faculty updated successfully'
    })

@admin_bp.route('/faculties/<int:faculty_id>', methods=['DELETE'])
@admin_required
def delete_faculty(faculty_id):
    faculty = db.session.get(Faculty, faculty_id)
    if not faculty:
        return jsonify({'success': False, 'error': 'Faculty not found'}), 404

    if faculty.departments or faculty.courses:
        return jsonify({
            'success': False,
            'error': 'Cannot delete faculty with existing departments or courses'
        }), 409

    # Detach users; they keep their accounts
    for user in faculty.users:
        user.faculty_id = None

    db.session.delete(faculty)
    db.session.commit()

    return jsonify({'success': True, 'message': 'Faculty deleted successfully'})

# DEPARTMENT MANAGEMENT
def _department_payload():
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    faculty_id = parse_int(data.get('facultyId'))

    if not name or faculty_id is None:
        return None, (jsonify({'success': False, 'error': 'Department name and facultyId are required'}), 400)

    if not db.session.get(Faculty, faculty_id):
        return None, (jsonify({'success': False, 'error': 'Faculty not found'}), 404)

    return (name, faculty_id), None

@admin_bp.route('/departments', methods=['POST'])
@admin_required
def create_department():
    payload, error = _department_payload()
    if error:
        return error
    name, faculty_id = payload

    if Department.query.filter_by(name=name, faculty_id=faculty_id).first():
        return jsonify({'success': False, 'error': 'Department already exists in this faculty'}), 409

    department = Department(name=name, faculty_id=faculty_id)
    db.session.add(department)
    db.session.commit()

    return jsonify({
        'success': True,
        'data': department.to_dict(),
        'message': 'Department created successfully'
    }), 201

@admin_bp.route('/departments/<int:department_id>', methods=['PUT'])
@admin_required
def edit_department(department_id):
    payload, error = _department_payload()
    if error:
        return error
    name, faculty_id = payload

    department = db.session.get(Department, department_id)
    if not department:
        return jsonify({'success': False, 'error': 'Department not found'}), 404

    existing = Department.query.filter_by(name=name, faculty_id=faculty_id).first()
    if existing and existing.id != department.id:
        return jsonify({'success': False, 'error': 'Department already exists in this faculty'}), 409

    department.name = name
    department.faculty_id = faculty_id
    db.session.commit()

    return jsonify({
        'success': True,
        'data': department.to_dict(),
        'message': 'Department updated successfully'
    })

@admin_bp.route('/departments/<int:department_id>', methods=['DELETE'])
@admin_required
def delete_department(department_id):
    department = db.session.get(Department, department_id)
    if not department:
        return jsonify({'success': False, 'error': 'Department not found'}), 404

    if department.courses:
        return jsonify({'success': False, 'error': 'Cannot delete department with existing courses'}), 409

    for user in department.users:
        user.department_id = None

    db.session.delete(department)
    db.session.commit()

    return jsonify({'success': True, 'message': 'Department deleted successfully'})

# COURSE MANAGEMENT
@admin_bp.route('/courses', methods=['POST'])
@admin_required
def create_course():
    data = request.get_json(silent=True) or {}
    title = data.get('title')
    raw_ids = [data.get('instructorId'), data.get('facultyId'), data.get('departmentId')]

    if not title or any(value in (None, '') for value in raw_ids):
        return jsonify({
            'success': False,
            'error': 'Title, instructorId, facultyId, and departmentId are required'
        }), 400

    instructor_id, faculty_id, department_id = [parse_int(value) for value in raw_ids]
    if None in (instructor_id, faculty_id, department_id):
        return jsonify({'success': False, 'error': 'Invalid instructorId, facultyId, or departmentId'}), 400

    instructor = db.session.get(User, instructor_id)
    if not instructor:
        return jsonify({'success': False, 'error': 'Instructor not found'}), 404
    if not instructor.is_instructor():
        return jsonify({'success': False, 'error': 'User is not an instructor'}), 400

    if not db.session.get(Faculty, faculty_id):
        return jsonify({'success': False, 'error': 'Faculty not found'}), 404

    department = db.session.get(Department, department_id)
    if not department:
        return jsonify({'success': False, 'error': 'Department not found'}), 404
    if department.faculty_id != faculty_id:
        return jsonify({'success': False, 'error': 'Department does not belong to this faculty'}), 400

    course = Course(
        title=title,
        instructor_id=instructor_id,
        faculty_id=faculty_id,
        department_id=department_id
    )

    try:
        db.session.add(course)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.error(f"Error creating course: {e}")
        return jsonify({'success': False, 'error': 'Failed to create course'}), 500

    logger.info(f"Course '{title}' created for instructor {instructor.email}")
    return jsonify({'success': True, 'data': course.to_dict()}), 201

@admin_bp.route('/courses/<int:course_id>', methods=['DELETE'])
@admin_required
def delete_course(course_id):
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({'success': False, 'error': 'Course not found'}), 404

    stored_files = [m.stored_name for m in course.materials] + [n.stored_name for n in course.lecture_notes]

    try:
        db.session.delete(course)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting course: {e}")
        return jsonify({'success': False, 'error': 'Failed to delete course'}), 500

    for stored_name in stored_files:
        delete_stored_file(course_id, stored_name)

    logger.info(f"Course {course_id} deleted with {len(stored_files)} stored file(s)")
    return jsonify({'success': True, 'message': 'Course deleted successfully'})
