import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'course-portal-secret-key-2024'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///portal.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    STORAGE_PATH = os.environ.get('STORAGE_PATH') or './storage'
    TMP_PATH = os.environ.get('TMP_PATH') or './storage/tmp'
    TEMP_FILE_MAX_AGE = 60 * 60  # seconds

    MAX_FILE_MB = int(os.environ.get('MAX_FILE_MB', 100))
    # Leave room for the multipart envelope; the exact limit is checked per file
    MAX_CONTENT_LENGTH = (MAX_FILE_MB + 1) * 1024 * 1024
    MAX_FILE_NAME_LENGTH = 120

    NOTIFICATIONS_ENABLED = os.environ.get('NOTIFICATIONS_ENABLED') == 'true'
    STUDENT_EMAIL_DOMAIN = os.environ.get('STUDENT_EMAIL_DOMAIN') or '@ogr.atu.edu.tr'

    # Allowed file extensions for course materials
    ALLOWED_MATERIAL_EXTENSIONS = {'.pdf', '.docx', '.pptx', '.xlsx', '.zip'}

    ALLOWED_MATERIAL_MIME_TYPES = {
        'application/pdf',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
        'application/vnd.openxmlformats-officedocument.presentationml.presentation',
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        'application/zip',
        'application/x-zip-compressed'
    }

    # Allowed file extensions for lecture notes
    ALLOWED_NOTE_EXTENSIONS = {'.pdf', '.docx'}

    ROLES = ('admin', 'instructor', 'student')

class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    NOTIFICATIONS_ENABLED = False
