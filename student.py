import logging
from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from models import db, Course, Enrollment, EnrollmentRequest, Notification, utcnow
from auth import student_required
from notifications import get_unread_count, mark_as_read, mark_all_as_read

logger = logging.getLogger(__name__)

student_bp = Blueprint('student', __name__, url_prefix='/api')

# ENROLLMENT

@student_bp.route('/enrollments/courses/<int:course_id>/enroll', methods=['POST'])
@student_required
def request_enrollment(course_id):
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({'success': False, 'error': 'Course not found'}), 404

    if course.has_student(current_user):
        return jsonify({'success': False, 'error': 'You are already enrolled in this course'}), 400

    enrollment_request = EnrollmentRequest.query.filter_by(
        course_id=course_id,
        student_id=current_user.id
    ).first()

    if enrollment_request and enrollment_request.status == 'pending':
        return jsonify({
            'success': False,
            'error': 'You already have an enrollment request for this course'
        }), 400

    if enrollment_request:
        # One request row per (course, student); a decided one is reopened
        enrollment_request.status = 'pending'
        enrollment_request.created_at = utcnow()
    else:
        enrollment_request = EnrollmentRequest(
            course_id=course_id,
            student_id=current_user.id,
            status='pending'
        )
        db.session.add(enrollment_request)

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating enrollment request: {e}")
        return jsonify({'success': False, 'error': 'Could not create enrollment request'}), 500

    logger.info(f"Student {current_user.email} requested enrollment in course {course_id}")
    return jsonify({
        'success': True,
        'data': enrollment_request.to_dict(),
        'message': 'Enrollment request created'
    }), 201

@student_bp.route('/enrollments/my-requests')
@login_required
def my_requests():
    requests = EnrollmentRequest.query.filter_by(student_id=current_user.id) \
        .order_by(EnrollmentRequest.created_at.desc(), EnrollmentRequest.id.desc()).all()

    return jsonify({'success': True, 'data': [req.to_dict() for req in requests]})

@student_bp.route('/enrollments/my-courses')
@login_required
def my_courses():
    courses = Course.query.join(Enrollment, Enrollment.course_id == Course.id) \
        .filter(Enrollment.student_id == current_user.id) \
        .order_by(Course.title).all()

    return jsonify({'success': True, 'data': [course.to_dict() for course in courses]})

@student_bp.route('/enrollments/courses/available')
@login_required
def available_courses():
    """Courses the user is neither enrolled in nor waiting on"""
    enrolled_ids = db.select(Enrollment.course_id).where(Enrollment.student_id == current_user.id)
    pending_ids = db.select(EnrollmentRequest.course_id).where(
        EnrollmentRequest.student_id == current_user.id,
        EnrollmentRequest.status == 'pending'
    )

    courses = Course.query.filter(
        Course.id.not_in(enrolled_ids),
        Course.id.not_in(pending_ids)
    ).order_by(Course.title).all()

    data = []
    for course in courses:
        course_data = course.to_dict()
        course_data['enrollmentCount'] = len(course.enrollments)
        data.append(course_data)

    return jsonify({'success': True, 'data': data})

# NOTIFICATIONS

@student_bp.route('/notifications')
@login_required
def notifications():
    items = Notification.query.filter_by(user_id=current_user.id) \
        .order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    return jsonify({'success': True, 'data': [item.to_dict() for item in items]})

@student_bp.route('/notifications/unread-count')
@login_required
def unread_count():
    return jsonify({'success': True, 'data': {'count': get_unread_count(current_user.id)}})

@student_bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_notification_read(notification_id):
    notification = mark_as_read(notification_id, current_user.id)
    if not notification:
        return jsonify({'success': False, 'error': 'Notification not found'}), 404

    return jsonify({'success': True, 'data': notification.to_dict()})

@student_bp.route('/notifications/read-all', methods=['POST'])
@login_required
def mark_all_notifications_read():
    updated = mark_all_as_read(current_user.id)
    return jsonify({'success': True, 'message': f'{updated} notification(s) marked as read'})
