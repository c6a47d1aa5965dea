from io import BytesIO

import pytest

from app import create_app
from config import TestConfig
from models import db
from seed import seed_database

PDF = 'application/pdf'

@pytest.fixture
def app(tmp_path):
    class LocalConfig(TestConfig):
        STORAGE_PATH = str(tmp_path / 'storage')
        TMP_PATH = str(tmp_path / 'storage' / 'tmp')

    app = create_app(LocalConfig)
    with app.app_context():
        db.create_all()
        seed_database()
    yield app

@pytest.fixture
def ids(app):
    """Primary keys of the seeded rows, by email / course title / faculty name"""
    from models import User, Course, Faculty, Department
    with app.app_context():
        return {
            'users': {user.email: user.id for user in User.query.all()},
            'courses': {course.title: course.id for course in Course.query.all()},
            'faculties': {faculty.name: faculty.id for faculty in Faculty.query.all()},
            'departments': {(d.faculty_id, d.name): d.id for d in Department.query.all()},
        }

def login(client, email, password):
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return client

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture
def admin_client(app):
    return login(app.test_client(), 'admin@atu.edu.tr', 'admin123')

@pytest.fixture
def instructor_client(app):
    # Teaches "Yazılım Mühendisliği" and "Veri Yapıları"
    return login(app.test_client(), 'ahmet.yilmaz@atu.edu.tr', 'instructor123')

@pytest.fixture
def other_instructor_client(app):
    # Teaches "İşletme Yönetimi"
    return login(app.test_client(), 'ayse.demir@atu.edu.tr', 'instructor123')

@pytest.fixture
def student_client(app):
    # Enrolled in "Yazılım Mühendisliği" and "Veri Yapıları"
    return login(app.test_client(), 'mehmet.kaya@ogr.atu.edu.tr', 'student123')

@pytest.fixture
def outsider_client(app):
    # Not enrolled anywhere
    return login(app.test_client(), 'student@ogr.atu.edu.tr', 'student123')

@pytest.fixture
def course_id(ids):
    return ids['courses']['Yazılım Mühendisliği']

def upload_material(client, course_id, name='syllabus.pdf', content=b'%PDF-1.4 test', mime=PDF, **form):
    data = {'file': (BytesIO(content), name, mime)}
    data.update(form)
    return client.post(f'/api/courses/{course_id}/materials/upload', data=data,
                       content_type='multipart/form-data')

def upload_note(client, course_id, name='week1.pdf', content=b'%PDF-1.4 notes', mime=PDF, **form):
    data = {'file': (BytesIO(content), name, mime)}
    data.update(form)
    return client.post(f'/api/courses/{course_id}/notes', data=data,
                       content_type='multipart/form-data')
