import os
import logging
from flask import Blueprint, request, jsonify, send_file
from flask_login import login_required, current_user
from models import db, Course, LectureNote
from utils import (
    validate_file_name, validate_note_type, validate_file_size, mock_virus_scan,
    generate_note_name, ensure_course_storage, stored_file_path, save_to_temp,
    move_to_final_location, delete_temp_file, delete_stored_file
)

logger = logging.getLogger(__name__)

notes_bp = Blueprint('notes', __name__, url_prefix='/api')

@notes_bp.route('/courses/<int:course_id>/notes')
@login_required
def course_notes(course_id):
    notes = LectureNote.query.filter_by(course_id=course_id) \
        .order_by(LectureNote.created_at.desc(), LectureNote.id.desc()).all()

    return jsonify({'success': True, 'data': [note.to_dict() for note in notes]})

@notes_bp.route('/courses/<int:course_id>/notes', methods=['POST'])
@login_required
def upload_note(course_id):
    """Any course member (instructor, enrolled student, admin) may share notes"""
    file = request.files.get('file')
    if not file or not file.filename:
        return jsonify({'success': False, 'error': 'No file uploaded'}), 400

    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({'success': False, 'error': 'Course not found'}), 404

    if not (current_user.is_admin() or course.is_taught_by(current_user) or course.has_student(current_user)):
        return jsonify({'success': False, 'error': 'You are not a member of this course'}), 403

    original_name = file.filename
    try:
        temp_path = save_to_temp(file)
        size_bytes = os.path.getsize(temp_path)
    except OSError as e:
        logger.error(f"Error writing temp file for lecture note '{original_name}': {e}")
        return jsonify({'success': False, 'error': 'Failed to upload lecture note'}), 500

    for check in (validate_file_name(original_name),
                  validate_note_type(original_name),
                  validate_file_size(size_bytes),
                  mock_virus_scan(original_name)):
        if not check:
            delete_temp_file(temp_path)
            logger.warning(f"Lecture note '{original_name}' rejected: {check.error}")
            return jsonify({'success': False, 'error': check.error}), check.status

    stored_name = generate_note_name(original_name)

    try:
        course_dir = ensure_course_storage(course_id)
        move_to_final_location(temp_path, os.path.join(course_dir, stored_name))

        note = LectureNote(
            course_id=course_id,
            uploader_id=current_user.id,
            original_name=original_name,
            stored_name=stored_name,
            description=request.form.get('description', ''),
            mime_type=file.mimetype,
            size_bytes=size_bytes
        )
        db.session.add(note)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        delete_temp_file(temp_path)
        logger.error(f"Error uploading lecture note: {e}")
        return jsonify({'success': False, 'error': 'Failed to upload lecture note'}), 500

    logger.info(f"Lecture note '{stored_name}' uploaded to course {course_id} by {current_user.email}")
    return jsonify({
        'success': True,
        'message': 'Lecture note uploaded successfully',
        'data': {'id': note.id, 'storedName': stored_name}
    })

@notes_bp.route('/notes/<int:note_id>/download')
@login_required
def download_note(note_id):
    note = db.session.get(LectureNote, note_id)
    if not note:
        return jsonify({'success': False, 'error': 'Lecture note not found'}), 404

    file_path = stored_file_path(note.course_id, note.stored_name)
    if not os.path.exists(file_path):
        return jsonify({'success': False, 'error': 'File not found on disk'}), 404

    return send_file(
        file_path,
        mimetype=note.mime_type,
        as_attachment=True,
        download_name=note.original_name
    )

@notes_bp.route('/notes/<int:note_id>', methods=['DELETE'])
@login_required
def delete_note(note_id):
    note = db.session.get(LectureNote, note_id)
    if not note:
        return jsonify({'success': False, 'error': 'Lecture note not found'}), 404

    # Check ownership or admin
    if note.uploader_id != current_user.id and not current_user.is_admin():
        return jsonify({'success': False, 'error': 'Not authorized to delete this note'}), 403

    course_id = note.course_id
    stored_name = note.stored_name

    try:
        db.session.delete(note)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting lecture note: {e}")
        return jsonify({'success': False, 'error': 'Failed to delete lecture note'}), 500

    delete_stored_file(course_id, stored_name)
    return jsonify({'success': True, 'message': 'Lecture note deleted successfully'})
