"""Idempotent demo data: faculties, departments, test accounts, courses, enrollments"""
import logging
from models import db, User, Faculty, Department, Course, Enrollment

logger = logging.getLogger(__name__)

FACULTIES = {
    'Bilgisayar Bilişim Fakültesi': [
        'Bilgisayar Mühendisliği Bölümü',
        'Yazılım Mühendisliği Bölümü',
        'Yapay Zeka Mühendisliği Bölümü',
        'Veri Bilimi ve Analitiği Bölümü',
        'Bilişim Sistemleri ve Teknolojileri Bölümü',
        'Bilgi Güvenliği Teknolojisi Bölümü'
    ],
    'Havacılık ve Uzay Fakültesi': [
        'Havacılık ve Uzay Mühendisliği Bölümü',
        'İklim Bilimi ve Meteoroloji Mühendisliği Bölümü',
        'Havacılık Yönetimi Bölümü',
        'Hava Trafik Kontrolü Bölümü'
    ],
    'İktisadi, İdari ve Sosyal Bilimler Fakültesi': [
        'Yönetim Bilişim Sistemleri Bölümü',
        'Uluslararası Ticaret ve Finansman Bölümü',
        'İşletme Bölümü',
        'Turizm İşletmeciliği Bölümü',
        'Siyaset Bilimi ve Kamu Yönetimi Bölümü',
        'Uluslararası İlişkiler Bölümü',
        'Psikoloji Bölümü',
        'Türk Dili ve Edebiyatı Bölümü',
        'Mütercim ve Tercümanlık Bölümü',
        'Gastronomi ve Mutfak Sanatları Bölümü'
    ],
    'Mimarlık ve Tasarım Fakültesi': [
        'Mimarlık Bölümü',
        'İç Mimarlık Bölümü',
        'Endüstriyel Tasarım Bölümü'
    ],
    'Mühendislik Fakültesi': [
        'Biyomühendislik',
        'Elektrik-Elektronik Mühendisliği',
        'Endüstri Mühendisliği',
        'Enerji Sistemleri Mühendisliği',
        'Gıda Mühendisliği',
        'İnşaat Mühendisliği',
        'Maden Mühendisliği',
        'Makine Mühendisliği',
        'Malzeme Bilimi ve Mühendisliği'
    ]
}

CS_FACULTY = 'Bilgisayar Bilişim Fakültesi'
SOCIAL_FACULTY = 'İktisadi, İdari ve Sosyal Bilimler Fakültesi'
SOFTWARE_DEPT = 'Yazılım Mühendisliği Bölümü'
MIS_DEPT = 'Yönetim Bilişim Sistemleri Bölümü'

# name, email, password, role, faculty, department
USERS = [
    ('System Admin', 'admin@atu.edu.tr', 'admin123', 'admin', None, None),
    ('Dr. Ahmet Yılmaz', 'ahmet.yilmaz@atu.edu.tr', 'instructor123', 'instructor', CS_FACULTY, SOFTWARE_DEPT),
    ('Dr. Ayşe Demir', 'ayse.demir@atu.edu.tr', 'instructor123', 'instructor', SOCIAL_FACULTY, MIS_DEPT),
    ('Test Instructor', 'instructor@atu.edu.tr', 'instructor123', 'instructor', CS_FACULTY, SOFTWARE_DEPT),
    ('Mehmet Kaya', 'mehmet.kaya@ogr.atu.edu.tr', 'student123', 'student', CS_FACULTY, SOFTWARE_DEPT),
    ('Fatma Çelik', 'fatma.celik@ogr.atu.edu.tr', 'student123', 'student', CS_FACULTY, SOFTWARE_DEPT),
    ('Ali Yıldız', 'ali.yildiz@ogr.atu.edu.tr', 'student123', 'student', SOCIAL_FACULTY, MIS_DEPT),
    ('Test Student', 'student@ogr.atu.edu.tr', 'student123', 'student', CS_FACULTY, SOFTWARE_DEPT),
]

# title, instructor email, faculty, department
COURSES = [
    ('Yazılım Mühendisliği', 'ahmet.yilmaz@atu.edu.tr', CS_FACULTY, SOFTWARE_DEPT),
    ('Veri Yapıları', 'ahmet.yilmaz@atu.edu.tr', CS_FACULTY, SOFTWARE_DEPT),
    ('İşletme Yönetimi', 'ayse.demir@atu.edu.tr', SOCIAL_FACULTY, MIS_DEPT),
]

# course title, student email
ENROLLMENTS = [
    ('Yazılım Mühendisliği', 'mehmet.kaya@ogr.atu.edu.tr'),
    ('Yazılım Mühendisliği', 'fatma.celik@ogr.atu.edu.tr'),
    ('Veri Yapıları', 'mehmet.kaya@ogr.atu.edu.tr'),
    ('İşletme Yönetimi', 'ali.yildiz@ogr.atu.edu.tr'),
]

def _get_or_create(model, defaults=None, **filters):
    instance = model.query.filter_by(**filters).first()
    if instance:
        return instance, False
    instance = model(**filters, **(defaults or {}))
    db.session.add(instance)
    db.session.flush()
    return instance, True

def seed_database():
    """Create missing seed rows; existing test accounts get their password reset"""
    if User.query.count() == 0:
        logger.info("Seeding database with initial data...")
    else:
        logger.info("Ensuring test accounts exist...")

    faculties = {}
    departments = {}
    for faculty_name, department_names in FACULTIES.items():
        faculty, _ = _get_or_create(Faculty, name=faculty_name)
        faculties[faculty_name] = faculty
        for department_name in department_names:
            department, _ = _get_or_create(Department, name=department_name, faculty_id=faculty.id)
            departments[department_name] = department

    users = {}
    for name, email, password, role, faculty_name, department_name in USERS:
        user, created = _get_or_create(User, email=email, defaults={
            'name': name,
            'role': role,
            'faculty_id': faculties[faculty_name].id if faculty_name else None,
            'department_id': departments[department_name].id if department_name else None,
            'password_hash': ''
        })
        user.set_password(password)
        users[email] = user
        logger.info(f"  - {'Created' if created else 'Updated'} test user: {email}")

    courses = {}
    for title, instructor_email, faculty_name, department_name in COURSES:
        course, _ = _get_or_create(
            Course,
            title=title,
            instructor_id=users[instructor_email].id,
            defaults={
                'faculty_id': faculties[faculty_name].id,
                'department_id': departments[department_name].id
            }
        )
        courses[title] = course

    for title, student_email in ENROLLMENTS:
        _get_or_create(Enrollment, course_id=courses[title].id, student_id=users[student_email].id)

    db.session.commit()

    logger.info(f"Database seeded: {len(faculties)} faculties, {len(departments)} departments, "
                f"{len(users)} test users, {len(courses)} courses")
    return {'faculties': faculties, 'departments': departments, 'users': users, 'courses': courses}
