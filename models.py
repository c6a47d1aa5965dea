from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timezone

db = SQLAlchemy()

def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)

def iso(value):
    return value.isoformat() if value else None

class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    faculty_id = db.Column(db.Integer, db.ForeignKey('faculties.id'), nullable=True)
    department_id = db.Column(db.Integer, db.ForeignKey('departments.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    courses_taught = db.relationship('Course', backref='instructor', lazy=True, foreign_keys='Course.instructor_id')
    uploaded_materials = db.relationship('Material', backref='instructor', lazy=True, foreign_keys='Material.instructor_id')
    lecture_notes = db.relationship('LectureNote', backref='uploader', lazy=True,
                                    cascade='all, delete-orphan', foreign_keys='LectureNote.uploader_id')
    enrollments = db.relationship('Enrollment', backref='student', lazy=True, cascade='all, delete-orphan')
    enrollment_requests = db.relationship('EnrollmentRequest', backref='student', lazy=True, cascade='all, delete-orphan')
    material_ratings = db.relationship('MaterialRating', backref='user', lazy=True, cascade='all, delete-orphan')
    material_grades = db.relationship('MaterialGrade', backref='user', lazy=True, cascade='all, delete-orphan')
    note_ratings = db.relationship('LectureNoteRating', backref='user', lazy=True, cascade='all, delete-orphan')
    notifications = db.relationship('Notification', backref='user', lazy=True, cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def is_student(self):
        return self.role == 'student'

    def is_instructor(self):
        return self.role == 'instructor'

    def is_admin(self):
        return self.role == 'admin'

    def session_dict(self):
        """Public identity stored in and returned for the session"""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'createdAt': iso(self.created_at)
        }

    def to_dict(self):
        data = self.session_dict()
        data.update({
            'facultyId': self.faculty_id,
            'departmentId': self.department_id,
            'facultyName': self.faculty.name if self.faculty else None,
            'departmentName': self.department.name if self.department else None
        })
        return data

class Faculty(db.Model):
    __tablename__ = 'faculties'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    departments = db.relationship('Department', backref='faculty', lazy=True, order_by='Department.name')
    courses = db.relationship('Course', backref='faculty', lazy=True)
    users = db.relationship('User', backref='faculty', lazy=True)

    def to_dict(self, with_departments=False):
        data = {
            'id': self.id,
            'name': self.name,
            'createdAt': iso(self.created_at)
        }
        if with_departments:
            data['departments'] = [department.to_dict() for department in self.departments]
        return data

class Department(db.Model):
    __tablename__ = 'departments'
    __table_args__ = (db.UniqueConstraint('name', 'faculty_id'),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    faculty_id = db.Column(db.Integer, db.ForeignKey('faculties.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    courses = db.relationship('Course', backref='department', lazy=True)
    users = db.relationship('User', backref='department', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'facultyId': self.faculty_id,
            'facultyName': self.faculty.name if self.faculty else None,
            'createdAt': iso(self.created_at)
        }

class Course(db.Model):
    __tablename__ = 'courses'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    instructor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    faculty_id = db.Column(db.Integer, db.ForeignKey('faculties.id'), nullable=False)
    department_id = db.Column(db.Integer, db.ForeignKey('departments.id'), nullable=False)

    # Relationships
    enrollments = db.relationship('Enrollment', backref='course', lazy=True, cascade='all, delete-orphan')
    enrollment_requests = db.relationship('EnrollmentRequest', backref='course', lazy=True, cascade='all, delete-orphan')
    materials = db.relationship('Material', backref='course', lazy=True, cascade='all, delete-orphan')
    lecture_notes = db.relationship('LectureNote', backref='course', lazy=True, cascade='all, delete-orphan')

    def is_taught_by(self, user):
        return self.instructor_id == user.id

    def has_student(self, user):
        return db.session.get(Enrollment, (self.id, user.id)) is not None

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'instructorId': self.instructor_id,
            'instructorName': self.instructor.name,
            'instructorEmail': self.instructor.email,
            'facultyId': self.faculty_id,
            'departmentId': self.department_id,
            'facultyName': self.faculty.name if self.faculty else None,
            'departmentName': self.department.name if self.department else None
        }

class EnrollmentRequest(db.Model):
    __tablename__ = 'course_enrollment_requests'
    __table_args__ = (db.UniqueConstraint('course_id', 'student_id'),)

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, approved, rejected
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        course = self.course
        student = self.student
        return {
            'id': self.id,
            'courseId': self.course_id,
            'studentId': self.student_id,
            'status': self.status,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
            'courseTitle': course.title,
            'instructorId': course.instructor_id,
            'instructorName': course.instructor.name,
            'studentName': student.name,
            'studentEmail': student.email,
            'facultyName': student.faculty.name if student.faculty else None,
            'departmentName': student.department.name if student.department else None
        }

class Enrollment(db.Model):
    __tablename__ = 'course_enrollments'

    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), primary_key=True)
    enrolled_at = db.Column(db.DateTime, default=utcnow)

class Material(db.Model):
    __tablename__ = 'materials'

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False)
    instructor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    stored_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default='')
    mime_type = db.Column(db.String(120), nullable=False)
    size_bytes = db.Column(db.Integer, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow)

    ratings = db.relationship('MaterialRating', backref='material', lazy=True, cascade='all, delete-orphan')
    grades = db.relationship('MaterialGrade', backref='material', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'courseId': self.course_id,
            'instructorId': self.instructor_id,
            'originalName': self.original_name,
            'storedName': self.stored_name,
            'description': self.description,
            'mimeType': self.mime_type,
            'sizeBytes': self.size_bytes,
            'version': self.version,
            'createdAt': iso(self.created_at)
        }

class MaterialRating(db.Model):
    __tablename__ = 'material_ratings'
    __table_args__ = (
        db.UniqueConstraint('material_id', 'user_id'),
        db.CheckConstraint('rating >= 1 AND rating <= 5'),
    )

    id = db.Column(db.Integer, primary_key=True)
    material_id = db.Column(db.Integer, db.ForeignKey('materials.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, default='')
    created_at = db.Column(db.DateTime, default=utcnow)

class MaterialGrade(db.Model):
    __tablename__ = 'material_grades'
    __table_args__ = (
        db.UniqueConstraint('material_id', 'user_id'),
        db.CheckConstraint('grade >= 0 AND grade <= 100'),
    )

    id = db.Column(db.Integer, primary_key=True)
    material_id = db.Column(db.Integer, db.ForeignKey('materials.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    grade = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

class LectureNote(db.Model):
    __tablename__ = 'lecture_notes'

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False)
    uploader_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    stored_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default='')
    mime_type = db.Column(db.String(120), nullable=False)
    size_bytes = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    ratings = db.relationship('LectureNoteRating', backref='note', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'courseId': self.course_id,
            'uploaderId': self.uploader_id,
            'uploaderName': self.uploader.name,
            'uploaderRole': self.uploader.role,
            'originalName': self.original_name,
            'storedName': self.stored_name,
            'description': self.description,
            'mimeType': self.mime_type,
            'sizeBytes': self.size_bytes,
            'createdAt': iso(self.created_at)
        }

class LectureNoteRating(db.Model):
    __tablename__ = 'lecture_note_ratings'
    __table_args__ = (
        db.UniqueConstraint('note_id', 'user_id'),
        db.CheckConstraint('rating >= 1 AND rating <= 5'),
    )

    id = db.Column(db.Integer, primary_key=True)
    note_id = db.Column(db.Integer, db.ForeignKey('lecture_notes.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, default='')
    created_at = db.Column(db.DateTime, default=utcnow)

class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    notification_type = db.Column(db.String(50))  # material, enrollment
    related_id = db.Column(db.Integer)  # ID of related item (material_id, etc.)
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'message': self.message,
            'type': self.notification_type,
            'relatedId': self.related_id,
            'isRead': self.is_read,
            'createdAt': iso(self.created_at)
        }
