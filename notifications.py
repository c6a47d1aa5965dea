import logging
from flask import current_app
from models import db, Notification, Enrollment, User

logger = logging.getLogger(__name__)

def create_bulk_notifications(user_ids, title, message, notification_type=None, related_id=None):
    """Store the same notification for every user in ``user_ids``"""
    notifications = [
        Notification(
            user_id=user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            related_id=related_id
        )
        for user_id in user_ids
    ]

    db.session.add_all(notifications)
    db.session.commit()
    return notifications

def create_notification(user_id, title, message, notification_type=None, related_id=None):
    return create_bulk_notifications([user_id], title, message, notification_type, related_id)[0]

def notify_material_upload(course, material):
    """Tell every enrolled student about a new material, if notifications are on"""
    if not current_app.config['NOTIFICATIONS_ENABLED']:
        return []

    students = User.query.join(Enrollment, Enrollment.student_id == User.id) \
        .filter(Enrollment.course_id == course.id) \
        .order_by(User.name).all()

    logger.info(f"NOTIFICATION: new material '{material.original_name}' in "
                f"{course.title} (ID: {course.id}), notifying {len(students)} student(s)")
    for student in students:
        logger.info(f"  - {student.name} ({student.email})")

    if not students:
        return []

    return create_bulk_notifications(
        user_ids=[student.id for student in students],
        title="New Course Material",
        message=f"New material '{material.original_name}' has been added to {course.title}",
        notification_type="material",
        related_id=material.id
    )

def _unread(user_id):
    return Notification.query.filter_by(user_id=user_id, is_read=False)

def get_unread_count(user_id):
    return _unread(user_id).count()

def mark_as_read(notification_id, user_id):
    """Returns None when the notification does not belong to the user"""
    notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
    if notification and not notification.is_read:
        notification.is_read = True
        db.session.commit()
    return notification

def mark_all_as_read(user_id):
    """Returns how many notifications changed"""
    updated = _unread(user_id).update({'is_read': True})
    db.session.commit()
    return updated
