from datetime import date, datetime, timezone as dt_timezone

import pytest

from backend.exceptions import Conflict, NotFound, ValidationError
from .models import Attendance, AttendanceRecord
from . import services

pytestmark = pytest.mark.django_db


@pytest.fixture
def roster(make_student):
    return [make_student() for _ in range(4)]


class TestCreateAttendance:
    def test_same_calendar_day_conflicts_regardless_of_time(self, classroom):
        morning = datetime(2024, 3, 1, 8, 30, tzinfo=dt_timezone.utc)
        evening = datetime(2024, 3, 1, 19, 45, tzinfo=dt_timezone.utc)

        attendance = services.create_attendance(classroom.pk, morning)
        with pytest.raises(Conflict):
            services.create_attendance(classroom.pk, evening)

        assert attendance.date == date(2024, 3, 1)
        assert Attendance.objects.filter(classroom=classroom).count() == 1

    def test_other_classrooms_may_share_a_day(self, classroom, make_classroom):
        services.create_attendance(classroom.pk, '2024-03-01')
        services.create_attendance(make_classroom(name='Chemistry').pk, '2024-03-01')

        assert Attendance.objects.count() == 2

    def test_missing_classroom(self):
        with pytest.raises(NotFound):
            services.create_attendance(5150, '2024-03-01')

    def test_records_are_created(self, classroom, roster):
        attendance = services.create_attendance(classroom.pk, '2024-03-01', records=[
            {'student': roster[0].pk},
            {'student': roster[1], 'status': 'late', 'minutes_late': 12},
        ])

        records = list(attendance.records.values_list('student_id', 'status', 'minutes_late'))
        assert records == [(roster[0].pk, 'present', 0), (roster[1].pk, 'late', 12)]

    def test_duplicate_students_are_rejected(self, classroom, student):
        with pytest.raises(ValidationError):
            services.create_attendance(classroom.pk, '2024-03-01', records=[{'student': student}, {'student': student}])
        assert not Attendance.objects.exists()

    def test_unknown_student_rolls_back(self, classroom):
        with pytest.raises(NotFound):
            services.create_attendance(classroom.pk, '2024-03-01', records=[{'student': 8080}])
        assert not Attendance.objects.exists()

    def test_invalid_date(self, classroom):
        with pytest.raises(ValidationError):
            services.create_attendance(classroom.pk, 'not-a-date')


class TestStudentRecords:
    def test_add_update_remove(self, classroom, roster):
        attendance = services.create_attendance(classroom.pk, '2024-03-01', records=[{'student': roster[0]}])

        services.add_student_record(attendance.pk, roster[1].pk, status='absent')
        with pytest.raises(Conflict):
            services.add_student_record(attendance.pk, roster[1].pk)

        services.update_student_record(attendance.pk, roster[1].pk, status='excused', remarks='Doctor note')
        record = AttendanceRecord.objects.get(attendance=attendance, student=roster[1])
        assert (record.status, record.remarks) == ('excused', 'Doctor note')

        services.remove_student_record(attendance.pk, roster[1].pk)
        assert list(attendance.records.values_list('student_id', flat=True)) == [roster[0].pk]

    def test_update_and_remove_missing_record(self, classroom, student):
        attendance = services.create_attendance(classroom.pk, '2024-03-01')

        with pytest.raises(NotFound):
            services.update_student_record(attendance.pk, student.pk, status='late')
        with pytest.raises(NotFound):
            services.remove_student_record(attendance.pk, student.pk)

    def test_update_rejects_unknown_fields_and_statuses(self, classroom, student):
        attendance = services.create_attendance(classroom.pk, '2024-03-01', records=[{'student': student}])

        with pytest.raises(ValidationError):
            services.update_student_record(attendance.pk, student.pk, student=3)
        with pytest.raises(ValidationError):
            services.update_student_record(attendance.pk, student.pk, status='asleep')

    def test_missing_attendance(self, student):
        with pytest.raises(NotFound):
            services.add_student_record(777, student.pk)


class TestStatistics:
    def test_classroom_statistics(self, classroom, roster):
        services.create_attendance(classroom.pk, '2024-03-01', records=[
            {'student': roster[0], 'status': 'present'},
            {'student': roster[1], 'status': 'present'},
            {'student': roster[2], 'status': 'absent'},
        ])
        services.create_attendance(classroom.pk, '2024-03-02', records=[
            {'student': roster[0], 'status': 'present'},
        ])

        assert services.classroom_statistics(classroom.pk) == {
            'total': 4,
            'present': 3,
            'absent': 1,
            'late': 0,
            'excused': 0,
            'present_percentage': 75.0,
            'absent_percentage': 25.0,
            'late_percentage': 0.0,
            'excused_percentage': 0.0,
        }

    def test_empty_statistics_have_no_percentages(self, classroom):
        assert services.classroom_statistics(classroom.pk) == {
            'total': 0, 'present': 0, 'absent': 0, 'late': 0, 'excused': 0,
        }

    def test_percentages_are_rounded(self, classroom, roster):
        services.create_attendance(classroom.pk, '2024-03-01', records=[
            {'student': roster[0], 'status': 'present'},
            {'student': roster[1], 'status': 'late'},
            {'student': roster[2], 'status': 'late'},
        ])

        stats = services.classroom_statistics(classroom.pk)

        assert stats['present_percentage'] == 33.33
        assert stats['late_percentage'] == 66.67

    def test_student_statistics_scoped_to_classroom(self, classroom, make_classroom, student):
        other = make_classroom(name='Art')
        services.create_attendance(classroom.pk, '2024-03-01', records=[{'student': student, 'status': 'absent'}])
        services.create_attendance(other.pk, '2024-03-01', records=[{'student': student, 'status': 'present'}])

        assert services.student_statistics(student.pk)['total'] == 2
        scoped = services.student_statistics(student.pk, classroom.pk)
        assert (scoped['total'], scoped['absent'], scoped['absent_percentage']) == (1, 1, 100.0)


class TestLookups:
    def test_student_attendance_newest_first_with_filters(self, classroom, make_classroom, student, roster):
        other = make_classroom(name='Music')
        services.create_attendance(classroom.pk, '2024-03-01', records=[{'student': student}, {'student': roster[0]}])
        services.create_attendance(classroom.pk, '2024-03-05', records=[{'student': student, 'status': 'late'}])
        services.create_attendance(other.pk, '2024-03-03', records=[{'student': student, 'status': 'absent'}])

        entries = services.student_attendance(student.pk)
        assert [(e['date'], e['classroom_name'], e['status']) for e in entries] == [
            (date(2024, 3, 5), 'Algebra I', 'late'),
            (date(2024, 3, 3), 'Music', 'absent'),
            (date(2024, 3, 1), 'Algebra I', 'present'),
        ]

        scoped = services.student_attendance(student.pk, classroom_id=classroom.pk, start_date='2024-03-02')
        assert [e['date'] for e in scoped] == [date(2024, 3, 5)]

    def test_student_attendance_for_missing_student(self):
        with pytest.raises(NotFound):
            services.student_attendance(9999)

    def test_classroom_attendance_and_by_date(self, classroom):
        services.create_attendance(classroom.pk, '2024-03-01')
        services.create_attendance(classroom.pk, '2024-03-08')

        days = services.classroom_attendance(classroom.pk, end_date='2024-03-05')
        assert [d.date for d in days] == [date(2024, 3, 1)]
        assert services.attendance_by_date(classroom.pk, '2024-03-08T10:00:00Z').date == date(2024, 3, 8)
        assert services.attendance_by_date(classroom.pk, '2024-03-09') is None


class TestAttendanceAPI:
    def test_create_truncates_to_day_and_rejects_duplicates(self, teacher_api, teacher, classroom, student):
        payload = {
            'classroom': classroom.pk,
            'date': '2024-03-01T09:15:00Z',
            'session_topic': 'Fractions',
            'student_records': [{'student': student.pk, 'status': 'late', 'minutes_late': 5}],
        }

        response = teacher_api.post('/api/attendance/', payload, format='json')

        data = response.json()['data']
        assert response.status_code == 201
        assert data['date'] == '2024-03-01'
        assert data['taken_by'] == teacher.user.pk
        assert data['records'][0]['status'] == 'late'

        payload['date'] = '2024-03-01T16:00:00Z'
        response = teacher_api.post('/api/attendance/', payload, format='json')
        assert response.status_code == 409
        assert response.json()['error'] == {
            'code': 'conflict',
            'message': 'Attendance record already exists for this date',
        }

    def test_statistics_endpoint(self, student_api, classroom, student):
        services.create_attendance(classroom.pk, '2024-03-01', records=[{'student': student, 'status': 'excused'}])

        response = student_api.get('/api/attendance/statistics/', {'classroom': classroom.pk})

        data = response.json()['data']
        assert data['total'] == 1
        assert data['excused_percentage'] == 100.0

    def test_record_endpoints(self, teacher_api, admin_api, classroom, roster):
        attendance = services.create_attendance(classroom.pk, '2024-03-01', records=[{'student': roster[0]}])
        url = f'/api/attendance/{attendance.pk}/records/'

        response = teacher_api.post(url, {'student': roster[1].pk, 'status': 'absent'})
        assert response.status_code == 201
        assert len(response.json()['data']['records']) == 2

        response = teacher_api.post(url, {'student': roster[1].pk})
        assert response.status_code == 409

        response = teacher_api.patch(f'{url}{roster[1].pk}/', {'status': 'excused'})
        assert response.status_code == 200
        assert AttendanceRecord.objects.get(attendance=attendance, student=roster[1]).status == 'excused'

        response = admin_api.delete(f'{url}{roster[1].pk}/')
        assert response.status_code == 200
        assert [r['student'] for r in response.json()['data']['records']] == [roster[0].pk]

        response = admin_api.delete(f'{url}{roster[1].pk}/')
        assert response.status_code == 404
