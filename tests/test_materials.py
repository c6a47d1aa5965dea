import os

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from models import db, Material, Notification

from conftest import upload_material

def _stored(app, course_id, stored_name):
    return os.path.join(app.config['STORAGE_PATH'], f'course_{course_id}', stored_name)

def _temp_files(app):
    return os.listdir(app.config['TMP_PATH'])

def test_upload_first_version(instructor_client, app, course_id):
    response = upload_material(instructor_client, course_id, description='Course outline')
    assert response.status_code == 200
    body = response.get_json()
    assert body['message'] == 'File uploaded successfully.'
    assert body['data']['originalName'] == 'syllabus.pdf'
    assert body['data']['storedName'] == 'syllabus.pdf'
    assert body['data']['version'] == 1

    with open(_stored(app, course_id, 'syllabus.pdf'), 'rb') as f:
        assert f.read() == b'%PDF-1.4 test'
    assert _temp_files(app) == []

    listing = instructor_client.get(f'/api/courses/{course_id}/materials').get_json()['data']
    assert listing[0]['description'] == 'Course outline'
    assert listing[0]['mimeType'] == 'application/pdf'
    assert listing[0]['sizeBytes'] == len(b'%PDF-1.4 test')

def test_duplicate_cancel_is_default(instructor_client, app, course_id):
    upload_material(instructor_client, course_id)
    response = upload_material(instructor_client, course_id, content=b'second')
    assert response.status_code == 409
    body = response.get_json()
    assert body['duplicateExists'] is True
    assert _temp_files(app) == []

    with open(_stored(app, course_id, 'syllabus.pdf'), 'rb') as f:
        assert f.read() == b'%PDF-1.4 test'

def test_duplicate_version_policy(instructor_client, app, course_id):
    upload_material(instructor_client, course_id)
    second = upload_material(instructor_client, course_id, content=b'v2', duplicatePolicy='version')
    third = upload_material(instructor_client, course_id, content=b'v3', duplicatePolicy='version')

    assert second.get_json()['data']['version'] == 2
    assert second.get_json()['data']['storedName'] == 'syllabus__v2.pdf'
    assert third.get_json()['data']['storedName'] == 'syllabus__v3.pdf'
    assert os.path.exists(_stored(app, course_id, 'syllabus__v2.pdf'))

    listing = instructor_client.get(f'/api/courses/{course_id}/materials').get_json()['data']
    assert [m['version'] for m in listing] == [3, 2, 1]

def test_duplicate_overwrite_replaces_latest_in_place(instructor_client, app, course_id):
    upload_material(instructor_client, course_id)
    upload_material(instructor_client, course_id, content=b'v2', duplicatePolicy='version')
    response = upload_material(instructor_client, course_id, content=b'v2 fixed',
                               duplicatePolicy='overwrite', description='typo fixed')

    data = response.get_json()['data']
    assert response.status_code == 200
    assert data['version'] == 2
    assert data['storedName'] == 'syllabus__v2.pdf'

    with open(_stored(app, course_id, 'syllabus__v2.pdf'), 'rb') as f:
        assert f.read() == b'v2 fixed'

    with app.app_context():
        rows = Material.query.filter_by(course_id=course_id).all()
        assert len(rows) == 2
        latest = db.session.get(Material, data['id'])
        assert latest.size_bytes == len(b'v2 fixed')
        assert latest.description == 'typo fixed'

def test_same_name_in_other_course_is_not_a_duplicate(instructor_client, ids, course_id):
    upload_material(instructor_client, course_id)
    other_course = ids['courses']['Veri Yapıları']
    response = upload_material(instructor_client, other_course)
    assert response.status_code == 200
    assert response.get_json()['data']['version'] == 1

def test_invalid_duplicate_policy(instructor_client, course_id):
    response = upload_material(instructor_client, course_id, duplicatePolicy='merge')
    assert response.status_code == 400

def test_missing_file(instructor_client, course_id):
    response = instructor_client.post(f'/api/courses/{course_id}/materials/upload', data={},
                                      content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'No file uploaded'

def test_unsupported_type_rejected(instructor_client, app, course_id):
    by_extension = upload_material(instructor_client, course_id, name='notes.txt', mime='text/plain')
    by_mime = upload_material(instructor_client, course_id, name='notes.pdf', mime='text/plain')
    assert by_extension.status_code == 400
    assert by_mime.status_code == 400
    assert 'Unsupported file type' in by_mime.get_json()['error']
    assert _temp_files(app) == []

def test_oversized_file_rejected(instructor_client, app, course_id):
    app.config['MAX_FILE_MB'] = 0
    response = upload_material(instructor_client, course_id)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'File too large. Maximum allowed size is 0MB.'
    assert _temp_files(app) == []

def test_virus_scan_blocks_upload(instructor_client, app, course_id):
    response = upload_material(instructor_client, course_id, name='virus_payload.pdf')
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Upload blocked: File failed virus scan.'
    assert not os.path.exists(_stored(app, course_id, 'virus_payload.pdf'))
    assert _temp_files(app) == []

def test_long_name_rejected(instructor_client, course_id):
    response = upload_material(instructor_client, course_id, name='x' * 130 + '.pdf')
    assert response.status_code == 400
    assert 'too long' in response.get_json()['error']

def test_upload_permissions(other_instructor_client, student_client, admin_client, course_id):
    assert upload_material(other_instructor_client, course_id).status_code == 403
    assert upload_material(student_client, course_id).status_code == 403
    assert upload_material(admin_client, course_id).status_code == 200

def test_upload_to_missing_course(instructor_client):
    assert upload_material(instructor_client, 9999).status_code == 404

def test_download_material(instructor_client, student_client, course_id):
    material_id = upload_material(instructor_client, course_id).get_json()['data']['id']
    response = student_client.get(f'/api/materials/{material_id}/download')
    assert response.status_code == 200
    assert response.data == b'%PDF-1.4 test'
    assert 'syllabus.pdf' in response.headers['Content-Disposition']
    assert student_client.get('/api/materials/9999/download').status_code == 404

def test_delete_material(instructor_client, other_instructor_client, student_client, app, course_id):
    material_id = upload_material(instructor_client, course_id).get_json()['data']['id']
    student_client.post(f'/api/materials/{material_id}/ratings', json={'rating': 4})

    assert other_instructor_client.delete(f'/api/materials/{material_id}').status_code == 403
    assert instructor_client.delete(f'/api/materials/{material_id}').status_code == 200
    assert not os.path.exists(_stored(app, course_id, 'syllabus.pdf'))
    assert instructor_client.delete(f'/api/materials/{material_id}').status_code == 404

def test_notifications_sent_when_enabled(instructor_client, student_client, app, ids, course_id):
    app.config['NOTIFICATIONS_ENABLED'] = True
    material_id = upload_material(instructor_client, course_id).get_json()['data']['id']

    with app.app_context():
        notified = {n.user_id for n in Notification.query.filter_by(notification_type='material')}
        assert notified == {ids['users']['mehmet.kaya@ogr.atu.edu.tr'], ids['users']['fatma.celik@ogr.atu.edu.tr']}

    count = student_client.get('/api/notifications/unread-count').get_json()['data']['count']
    assert count == 1
    items = student_client.get('/api/notifications').get_json()['data']
    assert items[0]['relatedId'] == material_id

    assert student_client.post(f"/api/notifications/{items[0]['id']}/read").status_code == 200
    assert student_client.get('/api/notifications/unread-count').get_json()['data']['count'] == 0

def test_no_notifications_when_disabled(instructor_client, app, course_id):
    upload_material(instructor_client, course_id)
    with app.app_context():
        assert Notification.query.count() == 0

def test_notifications_are_private(instructor_client, student_client, outsider_client, app, course_id):
    app.config['NOTIFICATIONS_ENABLED'] = True
    upload_material(instructor_client, course_id)
    notification_id = student_client.get('/api/notifications').get_json()['data'][0]['id']

    assert outsider_client.post(f'/api/notifications/{notification_id}/read').status_code == 404
    read_all = student_client.post('/api/notifications/read-all')
    assert read_all.get_json()['message'] == '1 notification(s) marked as read'
    assert student_client.get('/api/notifications/unread-count').get_json()['data']['count'] == 0

# STORAGE SAFETY

def test_upload_cannot_take_another_versions_stored_name(instructor_client, app, course_id):
    upload_material(instructor_client, course_id, name='a.pdf', content=b'VERSION-ONE')
    second = upload_material(instructor_client, course_id, name='a.pdf', content=b'VERSION-TWO',
                             duplicatePolicy='version').get_json()['data']
    assert second['storedName'] == 'a__v2.pdf'

    clash = upload_material(instructor_client, course_id, name='a__v2.pdf', content=b'UNRELATED')
    assert clash.status_code == 409
    assert 'a__v2.pdf' in clash.get_json()['error']
    assert _temp_files(app) == []

    download = instructor_client.get(f"/api/materials/{second['id']}/download")
    assert download.data == b'VERSION-TWO'

def test_new_version_cannot_take_existing_stored_name(instructor_client, course_id):
    literal = upload_material(instructor_client, course_id, name='b__v2.pdf', content=b'LITERAL').get_json()['data']
    upload_material(instructor_client, course_id, name='b.pdf')

    clash = upload_material(instructor_client, course_id, name='b.pdf', content=b'NEW', duplicatePolicy='version')
    assert clash.status_code == 409
    assert instructor_client.get(f"/api/materials/{literal['id']}/download").data == b'LITERAL'

def _fail_commit():
    raise SQLAlchemyError('database is locked')

def test_failed_overwrite_restores_previous_file(instructor_client, app, course_id, monkeypatch):
    material_id = upload_material(instructor_client, course_id).get_json()['data']['id']

    monkeypatch.setattr(db.session, 'commit', _fail_commit)
    response = upload_material(instructor_client, course_id, content=b'replacement', duplicatePolicy='overwrite')
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.get_json()['error'] == 'Failed to save file. Storage error occurred.'
    with open(_stored(app, course_id, 'syllabus.pdf'), 'rb') as f:
        assert f.read() == b'%PDF-1.4 test'
    assert _temp_files(app) == []

    with app.app_context():
        assert db.session.get(Material, material_id).size_bytes == len(b'%PDF-1.4 test')

def test_failed_first_upload_leaves_no_file(instructor_client, app, course_id, monkeypatch):
    monkeypatch.setattr(db.session, 'commit', _fail_commit)
    response = upload_material(instructor_client, course_id)
    monkeypatch.undo()

    assert response.status_code == 500
    assert not os.path.exists(_stored(app, course_id, 'syllabus.pdf'))
    assert _temp_files(app) == []

def _partial_save(self, dst, buffer_size=16384):
    with open(dst, 'wb') as f:
        f.write(b'partial')
    raise OSError('No space left on device')

def test_temp_write_failure_is_cleaned_up(instructor_client, app, course_id, monkeypatch):
    monkeypatch.setattr(FileStorage, 'save', _partial_save)
    response = upload_material(instructor_client, course_id)

    assert response.status_code == 500
    assert response.get_json()['error'] == 'Failed to save file. Storage error occurred.'
    assert _temp_files(app) == []
