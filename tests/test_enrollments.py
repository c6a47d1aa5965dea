from models import Enrollment, EnrollmentRequest, Notification

def _enroll(client, course_id):
    return client.post(f'/api/enrollments/courses/{course_id}/enroll')

def test_student_requests_enrollment(outsider_client, course_id):
    response = _enroll(outsider_client, course_id)
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['status'] == 'pending'
    assert data['courseTitle'] == 'Yazılım Mühendisliği'
    assert data['studentEmail'] == 'student@ogr.atu.edu.tr'

    requests = outsider_client.get('/api/enrollments/my-requests').get_json()['data']
    assert [r['courseId'] for r in requests] == [course_id]

def test_enroll_rejects_duplicates_and_members(outsider_client, student_client, course_id):
    _enroll(outsider_client, course_id)
    again = _enroll(outsider_client, course_id)
    assert again.status_code == 400
    assert again.get_json()['error'] == 'You already have an enrollment request for this course'

    member = _enroll(student_client, course_id)
    assert member.status_code == 400
    assert member.get_json()['error'] == 'You are already enrolled in this course'

def test_enroll_requires_student(instructor_client, client, course_id):
    assert _enroll(instructor_client, course_id).status_code == 403
    assert _enroll(client, course_id).status_code == 401

def test_enroll_missing_course(outsider_client):
    assert _enroll(outsider_client, 9999).status_code == 404

def test_instructor_sees_only_own_course_requests(outsider_client, instructor_client, other_instructor_client,
                                                 admin_client, ids, course_id):
    business = ids['courses']['İşletme Yönetimi']
    _enroll(outsider_client, course_id)
    _enroll(outsider_client, business)

    own = instructor_client.get('/api/enrollments/requests').get_json()['data']
    other = other_instructor_client.get('/api/enrollments/requests').get_json()['data']
    everything = admin_client.get('/api/enrollments/requests').get_json()['data']

    assert [r['courseId'] for r in own] == [course_id]
    assert [r['courseId'] for r in other] == [business]
    assert {r['courseId'] for r in everything} == {course_id, business}
    assert own[0]['facultyName'] == 'Bilgisayar Bilişim Fakültesi'

def test_approve_request_creates_enrollment(outsider_client, instructor_client, app, ids, course_id):
    request_id = _enroll(outsider_client, course_id).get_json()['data']['id']

    response = instructor_client.put(f'/api/enrollments/requests/{request_id}', json={'status': 'approved'})
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Enrollment approved'

    student_id = ids['users']['student@ogr.atu.edu.tr']
    with app.app_context():
        assert Enrollment.query.filter_by(course_id=course_id, student_id=student_id).count() == 1
        notification = Notification.query.filter_by(user_id=student_id).one()
        assert notification.notification_type == 'enrollment'
        assert notification.related_id == course_id

    titles = [c['title'] for c in outsider_client.get('/api/enrollments/my-courses').get_json()['data']]
    assert titles == ['Yazılım Mühendisliği']
    assert instructor_client.get('/api/enrollments/requests').get_json()['data'] == []

def test_decided_request_cannot_be_decided_again(outsider_client, instructor_client, course_id):
    request_id = _enroll(outsider_client, course_id).get_json()['data']['id']
    instructor_client.put(f'/api/enrollments/requests/{request_id}', json={'status': 'rejected'})

    again = instructor_client.put(f'/api/enrollments/requests/{request_id}', json={'status': 'approved'})
    assert again.status_code == 400
    assert again.get_json()['error'] == 'Request has already been processed'

def test_decide_validation_and_ownership(outsider_client, instructor_client, other_instructor_client, course_id):
    request_id = _enroll(outsider_client, course_id).get_json()['data']['id']
    url = f'/api/enrollments/requests/{request_id}'

    assert instructor_client.put(url, json={'status': 'maybe'}).status_code == 400
    assert instructor_client.put('/api/enrollments/requests/9999', json={'status': 'approved'}).status_code == 404
    assert other_instructor_client.put(url, json={'status': 'approved'}).status_code == 403
    assert outsider_client.put(url, json={'status': 'approved'}).status_code == 403

def test_rejected_request_can_be_reopened(outsider_client, instructor_client, app, course_id):
    request_id = _enroll(outsider_client, course_id).get_json()['data']['id']
    instructor_client.put(f'/api/enrollments/requests/{request_id}', json={'status': 'rejected'})

    reopened = _enroll(outsider_client, course_id)
    assert reopened.status_code == 201
    assert reopened.get_json()['data']['id'] == request_id
    assert reopened.get_json()['data']['status'] == 'pending'

    with app.app_context():
        assert EnrollmentRequest.query.filter_by(course_id=course_id).count() == 1

def test_available_courses_exclude_enrolled_and_pending(student_client, outsider_client, ids, course_id):
    titles = [c['title'] for c in student_client.get('/api/enrollments/courses/available').get_json()['data']]
    assert titles == ['İşletme Yönetimi']

    _enroll(outsider_client, course_id)
    available = outsider_client.get('/api/enrollments/courses/available').get_json()['data']
    assert [c['title'] for c in available] == ['Veri Yapıları', 'İşletme Yönetimi']
    assert available[0]['enrollmentCount'] == 1

def test_my_courses_sorted(student_client):
    titles = [c['title'] for c in student_client.get('/api/enrollments/my-courses').get_json()['data']]
    assert titles == ['Veri Yapıları', 'Yazılım Mühendisliği']
