import os
import re
import time
import uuid
import secrets
import logging
import posixpath
from flask import current_app

logger = logging.getLogger(__name__)

INTEGER_PATTERN = re.compile(r'-?[0-9]+')

class ValidationResult:
    """Outcome of one upload check; carries the message shown to the client"""

    def __init__(self, valid, error=None, status=400):
        self.valid = valid
        self.error = error
        self.status = status

    def __bool__(self):
        return self.valid

    @classmethod
    def ok(cls):
        return cls(True)

    @classmethod
    def fail(cls, error, status=400):
        return cls(False, error, status)

def file_extension(filename):
    return os.path.splitext(filename)[1].lower()

def validate_file_name(filename):
    if not filename or filename.strip() == '':
        return ValidationResult.fail('File name cannot be empty.')

    max_length = current_app.config['MAX_FILE_NAME_LENGTH']
    if len(filename) > max_length:
        return ValidationResult.fail(
            f'File name too long. Maximum allowed length is {max_length} characters.'
        )

    if (posixpath.normpath(filename) != filename or '..' in filename
            or '/' in filename or '\\' in filename):
        return ValidationResult.fail('Invalid file name. Path traversal characters are not allowed.')

    return ValidationResult.ok()

def validate_file_type(filename, mime_type):
    """Both the extension and the declared MIME type must be allow-listed"""
    error = 'Unsupported file type. Allowed formats: PDF, DOCX, PPTX, XLSX, ZIP.'

    if file_extension(filename) not in current_app.config['ALLOWED_MATERIAL_EXTENSIONS']:
        return ValidationResult.fail(error)

    if mime_type not in current_app.config['ALLOWED_MATERIAL_MIME_TYPES']:
        return ValidationResult.fail(error)

    return ValidationResult.ok()

def validate_note_type(filename):
    if file_extension(filename) not in current_app.config['ALLOWED_NOTE_EXTENSIONS']:
        return ValidationResult.fail('Only PDF and DOCX files are allowed for lecture notes')
    return ValidationResult.ok()

def validate_file_size(size_bytes):
    max_mb = current_app.config['MAX_FILE_MB']
    if size_bytes > max_mb * 1024 * 1024:
        return ValidationResult.fail(f'File too large. Maximum allowed size is {max_mb}MB.')
    return ValidationResult.ok()

def mock_virus_scan(filename):
    """Stand-in scanner: any name containing "virus" is treated as infected"""
    if 'virus' in filename.lower():
        return ValidationResult.fail('Upload blocked: File failed virus scan.', status=403)
    return ValidationResult.ok()

def generate_stored_name(original_name, version):
    base, ext = os.path.splitext(original_name)
    if version == 1:
        return f"{base}{ext}"
    return f"{base}__v{version}{ext}"

def generate_note_name(original_name):
    """Unique on-disk name for a lecture note: sanitised base, ms timestamp, random suffix"""
    base, ext = os.path.splitext(original_name)
    base = re.sub(r'[^a-zA-Z0-9]', '_', base)
    timestamp = int(time.time() * 1000)
    suffix = secrets.token_hex(3)
    return f"{base}_{timestamp}_{suffix}{ext}"

def ensure_course_storage(course_id):
    course_dir = course_storage_path(course_id)
    os.makedirs(course_dir, exist_ok=True)
    return course_dir

def course_storage_path(course_id):
    return os.path.abspath(os.path.join(current_app.config['STORAGE_PATH'], f"course_{course_id}"))

def stored_file_path(course_id, stored_name):
    return os.path.join(course_storage_path(course_id), stored_name)

def ensure_temp_storage():
    temp_dir = os.path.abspath(current_app.config['TMP_PATH'])
    os.makedirs(temp_dir, exist_ok=True)
    return temp_dir

def save_to_temp(file):
    """Write an incoming upload into the temp directory under a random name"""
    temp_path = os.path.join(ensure_temp_storage(), uuid.uuid4().hex)
    try:
        file.save(temp_path)
    except OSError:
        delete_temp_file(temp_path)
        raise
    return temp_path

def move_to_final_location(temp_path, final_path):
    os.replace(temp_path, final_path)

def set_aside(file_path):
    """Move an existing stored file into the temp directory so it can be restored"""
    if not os.path.exists(file_path):
        return None
    backup_path = os.path.join(ensure_temp_storage(), f"{uuid.uuid4().hex}.bak")
    os.replace(file_path, backup_path)
    return backup_path

def restore_file(backup_path, file_path):
    if backup_path and os.path.exists(backup_path):
        os.replace(backup_path, file_path)

def delete_temp_file(temp_path):
    if temp_path and os.path.exists(temp_path):
        os.remove(temp_path)

def delete_stored_file(course_id, stored_name):
    file_path = stored_file_path(course_id, stored_name)
    if os.path.exists(file_path):
        os.remove(file_path)
        return True
    return False

def cleanup_temp_files(max_age=None):
    """Remove temp files older than max_age seconds; returns how many were deleted"""
    temp_dir = os.path.abspath(current_app.config['TMP_PATH'])
    if not os.path.isdir(temp_dir):
        return 0

    if max_age is None:
        max_age = current_app.config['TEMP_FILE_MAX_AGE']
    cutoff = time.time() - max_age
    cleaned = 0

    for name in os.listdir(temp_dir):
        file_path = os.path.join(temp_dir, name)
        try:
            if os.path.isfile(file_path) and os.path.getmtime(file_path) < cutoff:
                os.remove(file_path)
                cleaned += 1
        except OSError as e:
            logger.error(f"Error deleting temp file {name}: {e}")

    if cleaned:
        logger.info(f"Cleaned up {cleaned} orphaned temp file(s)")
    return cleaned

def parse_int(value):
    """Accept ints and integral strings/floats from JSON or form input; None otherwise"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and INTEGER_PATTERN.fullmatch(value.strip()):
        return int(value.strip())
    return None
