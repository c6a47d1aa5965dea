import os
import logging
from flask import Blueprint, request, jsonify, send_file
from flask_login import login_required, current_user
from models import db, Course, Material, EnrollmentRequest, Enrollment, utcnow
from auth import instructor_required
from utils import (
    validate_file_name, validate_file_type, validate_file_size, mock_virus_scan,
    generate_stored_name, ensure_course_storage, stored_file_path, save_to_temp,
    move_to_final_location, set_aside, restore_file, delete_temp_file, delete_stored_file
)
from notifications import notify_material_upload, create_notification

logger = logging.getLogger(__name__)

instructor_bp = Blueprint('instructor', __name__, url_prefix='/api')

DUPLICATE_POLICIES = ('cancel', 'version', 'overwrite')

def _can_manage(course):
    return current_user.is_admin() or course.is_taught_by(current_user)

# COURSE MATERIALS

@instructor_bp.route('/courses/<int:course_id>/materials')
@login_required
def course_materials(course_id):
    materials = Material.query.filter_by(course_id=course_id) \
        .order_by(Material.original_name, Material.version.desc()).all()

    return jsonify({'success': True, 'data': [material.to_dict() for material in materials]})

def _latest_version(course_id, original_name):
    return Material.query.filter_by(course_id=course_id, original_name=original_name) \
        .order_by(Material.version.desc()).first()

def _stored_name_taken(course_id, stored_name, material=None):
    """True when the name belongs to another material or file in the course directory"""
    query = Material.query.filter_by(course_id=course_id, stored_name=stored_name)
    if material:
        return query.filter(Material.id != material.id).first() is not None
    return query.first() is not None or os.path.exists(stored_file_path(course_id, stored_name))

@instructor_bp.route('/courses/<int:course_id>/materials/upload', methods=['POST'])
@instructor_required
def upload_material(course_id):
    file = request.files.get('file')
    if not file or not file.filename:
        return jsonify({'success': False, 'error': 'No file uploaded'}), 400

    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({'success': False, 'error': 'Course not found'}), 404

    if not _can_manage(course):
        return jsonify({'success': False, 'error': 'You do not teach this course'}), 403

    description = request.form.get('description', '')
    duplicate_policy = request.form.get('duplicatePolicy') or 'cancel'
    if duplicate_policy not in DUPLICATE_POLICIES:
        return jsonify({
            'success': False,
            'error': 'Invalid duplicate policy. Choose overwrite, version, or cancel.'
        }), 400

    original_name = file.filename
    try:
        temp_path = save_to_temp(file)
        size_bytes = os.path.getsize(temp_path)
    except OSError as e:
        logger.error(f"Error writing temp file for '{original_name}': {e}")
        return jsonify({'success': False, 'error': 'Failed to save file. Storage error occurred.'}), 500

    for check in (validate_file_name(original_name),
                  validate_file_type(original_name, file.mimetype),
                  validate_file_size(size_bytes),
                  mock_virus_scan(original_name)):
        if not check:
            delete_temp_file(temp_path)
            logger.warning(f"Upload of '{original_name}' to course {course_id} rejected: {check.error}")
            return jsonify({'success': False, 'error': check.error}), check.status

    latest = _latest_version(course_id, original_name)
    material = None
    version = 1

    if latest:
        if duplicate_policy == 'cancel':
            delete_temp_file(temp_path)
            return jsonify({
                'success': False,
                'error': 'A file with this name already exists. Please choose a policy: overwrite, version, or cancel.',
                'duplicateExists': True
            }), 409
        elif duplicate_policy == 'version':
            version = latest.version + 1
        else:
            material = latest
            version = latest.version

    stored_name = material.stored_name if material else generate_stored_name(original_name, version)

    if _stored_name_taken(course_id, stored_name, material):
        delete_temp_file(temp_path)
        logger.warning(f"Upload of '{original_name}' to course {course_id} would replace '{stored_name}'")
        return jsonify({
            'success': False,
            'error': f"Stored file name '{stored_name}' is already used by another material. "
                     "Rename the file and try again."
        }), 409

    final_path = stored_file_path(course_id, stored_name)
    backup_path = None
    moved = False

    try:
        ensure_course_storage(course_id)
        if material:
            backup_path = set_aside(final_path)
        move_to_final_location(temp_path, final_path)
        moved = True

        if material:
            material.instructor_id = current_user.id
            material.description = description
            material.mime_type = file.mimetype
            material.size_bytes = size_bytes
            material.created_at = utcnow()
        else:
            material = Material(
                course_id=course_id,
                instructor_id=current_user.id,
                original_name=original_name,
                stored_name=stored_name,
                description=description,
                mime_type=file.mimetype,
                size_bytes=size_bytes,
                version=version
            )
            db.session.add(material)

        db.session.commit()
    except Exception as e:
        db.session.rollback()
        if moved and not backup_path:
            delete_stored_file(course_id, stored_name)
        delete_temp_file(temp_path)
        restore_file(backup_path, final_path)
        logger.error(f"Error saving file: {e}")
        return jsonify({'success': False, 'error': 'Failed to save file. Storage error occurred.'}), 500

    delete_temp_file(backup_path)

    logger.info(f"Material '{stored_name}' (v{version}) stored for course {course_id}")
    notify_material_upload(course, material)

    return jsonify({
        'success': True,
        'message': 'File uploaded successfully.',
        'data': {
            'id': material.id,
            'originalName': original_name,
            'storedName': stored_name,
            'version': version
        }
    })

@instructor_bp.route('/materials/<int:material_id>/download')
@login_required
def download_material(material_id):
    material = db.session.get(Material, material_id)
    if not material:
        return jsonify({'success': False, 'error': 'Material not found'}), 404

    file_path = stored_file_path(material.course_id, material.stored_name)
    if not os.path.exists(file_path):
        return jsonify({'success': False, 'error': 'File not found on server'}), 404

    return send_file(
        file_path,
        mimetype=material.mime_type,
        as_attachment=True,
        download_name=material.original_name
    )

@instructor_bp.route('/materials/<int:material_id>', methods=['DELETE'])
@instructor_required
def delete_material(material_id):
    material = db.session.get(Material, material_id)
    if not material:
        return jsonify({'success': False, 'error': 'Material not found'}), 404

    if not _can_manage(material.course):
        return jsonify({'success': False, 'error': 'You do not teach this course'}), 403

    course_id = material.course_id
    stored_name = material.stored_name

    try:
        db.session.delete(material)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting material: {e}")
        return jsonify({'success': False, 'error': 'Failed to delete material'}), 500

    delete_stored_file(course_id, stored_name)
    logger.info(f"Material {material_id} ({stored_name}) deleted from course {course_id}")

    return jsonify({'success': True, 'message': 'Material deleted successfully'})

# ENROLLMENT REQUESTS

@instructor_bp.route('/enrollments/requests')
@instructor_required
def enrollment_requests():
    query = EnrollmentRequest.query.filter_by(status='pending')

    # Instructors see requests for their courses only
    if not current_user.is_admin():
        query = query.join(Course, EnrollmentRequest.course_id == Course.id) \
            .filter(Course.instructor_id == current_user.id)

    requests = query.order_by(EnrollmentRequest.created_at.desc(), EnrollmentRequest.id.desc()).all()
    return jsonify({'success': True, 'data': [req.to_dict() for req in requests]})

@instructor_bp.route('/enrollments/requests/<int:request_id>', methods=['PUT'])
@instructor_required
def decide_enrollment_request(request_id):
    data = request.get_json(silent=True) or {}
    status = data.get('status')

    if status not in ('approved', 'rejected'):
        return jsonify({'success': False, 'error': 'Invalid status'}), 400

    enrollment_request = db.session.get(EnrollmentRequest, request_id)
    if not enrollment_request:
        return jsonify({'success': False, 'error': 'Request not found'}), 404

    course = enrollment_request.course
    if not _can_manage(course):
        return jsonify({'success': False, 'error': 'You do not teach this course'}), 403

    if enrollment_request.status != 'pending':
        return jsonify({'success': False, 'error': 'Request has already been processed'}), 400

    enrollment_request.status = status
    if status == 'approved' and not course.has_student(enrollment_request.student):
        db.session.add(Enrollment(course_id=course.id, student_id=enrollment_request.student_id))

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating enrollment request: {e}")
        return jsonify({'success': False, 'error': 'Could not update request'}), 500

    create_notification(
        user_id=enrollment_request.student_id,
        title="Enrollment Request Updated",
        message=f"Your enrollment request for {course.title} was {status}",
        notification_type="enrollment",
        related_id=course.id
    )

    return jsonify({
        'success': True,
        'message': 'Enrollment approved' if status == 'approved' else 'Enrollment rejected'
    })
