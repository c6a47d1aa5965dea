"""Read-only catalogue: faculties, departments and courses"""
from flask import Blueprint, request, jsonify
from models import db, Faculty, Department, Course, Enrollment
from utils import parse_int

courses_bp = Blueprint('courses', __name__, url_prefix='/api')

@courses_bp.route('/faculties')
def list_faculties():
    faculties = Faculty.query.order_by(Faculty.name).all()
    return jsonify({'success': True, 'data': [faculty.to_dict() for faculty in faculties]})

@courses_bp.route('/faculties/<int:faculty_id>')
def get_faculty(faculty_id):
    faculty = db.session.get(Faculty, faculty_id)
    if not faculty:
        return jsonify({'success': False, 'error': 'Faculty not found'}), 404

    return jsonify({'success': True, 'data': faculty.to_dict(with_departments=True)})

@courses_bp.route('/departments')
def list_departments():
    query = Department.query.join(Faculty, Department.faculty_id == Faculty.id)

    faculty_id = request.args.get('facultyId')
    if faculty_id:
        faculty_id = parse_int(faculty_id)
        if faculty_id is None:
            return jsonify({'success': False, 'error': 'Valid facultyId is required'}), 400
        query = query.filter(Department.faculty_id == faculty_id)

    departments = query.order_by(Faculty.name, Department.name).all()
    return jsonify({'success': True, 'data': [department.to_dict() for department in departments]})

@courses_bp.route('/departments/<int:department_id>')
def get_department(department_id):
    department = db.session.get(Department, department_id)
    if not department:
        return jsonify({'success': False, 'error': 'Department not found'}), 404

    return jsonify({'success': True, 'data': department.to_dict()})

@courses_bp.route('/courses')
def list_courses():
    """All courses, or those of one instructor (?instructorId=) or one student (?studentId=)"""
    instructor_id = request.args.get('instructorId')
    student_id = request.args.get('studentId')
    query = Course.query

    if instructor_id:
        instructor_id = parse_int(instructor_id)
        if instructor_id is None:
            return jsonify({'success': False, 'error': 'Valid instructorId is required'}), 400
        query = query.filter(Course.instructor_id == instructor_id)
    elif student_id:
        student_id = parse_int(student_id)
        if student_id is None:
            return jsonify({'success': False, 'error': 'Valid studentId is required'}), 400
        query = query.join(Enrollment, Enrollment.course_id == Course.id).filter(Enrollment.student_id == student_id)

    courses = query.order_by(Course.title).all()
    return jsonify({'success': True, 'data': [course.to_dict() for course in courses]})

@courses_bp.route('/courses/<int:course_id>')
def get_course(course_id):
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({'success': False, 'error': 'Course not found'}), 404

    return jsonify({'success': True, 'data': course.to_dict()})
