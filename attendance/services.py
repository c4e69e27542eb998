"""
Attendance days and their per-student sub-records.

Each ``Attendance`` is the sheet for one classroom on one calendar day;
its ``AttendanceRecord`` rows are the per-student entries. Statistics are
grouped counts over those rows.
"""
import logging
from datetime import datetime

from django.db import IntegrityError, transaction
from django.db.models import Count, F
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from academics.services import atomic_operation, get_classroom, get_student
from academics.models import StudentProfile
from backend.exceptions import Conflict, NotFound, ValidationError
from .models import Attendance, AttendanceRecord

logger = logging.getLogger(__name__)

STATUSES = [value for value, _ in AttendanceRecord.STATUS_CHOICES]
RECORD_FIELDS = ('status', 'remarks', 'minutes_late')


def truncate_to_day(value):
    """Reduce a date, datetime or ISO string to its calendar day."""
    if isinstance(value, str):
        parsed = parse_datetime(value)
        value = parsed if parsed is not None else parse_date(value)
        if value is None:
            raise ValidationError({'date': ['Date has wrong format. Use YYYY-MM-DD.']})
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    return value


def _validate_status(status):
    if status not in STATUSES:
        raise ValidationError({'status': [f'"{status}" is not a valid attendance status.']})


def get_attendance(attendance_id, lock=False) -> Attendance:
    queryset = Attendance.objects.all()
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=attendance_id)
    except (Attendance.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'No attendance record found with id {attendance_id}')


def create_attendance(classroom_id, date, records=(), taken_by=None, session_topic=None, is_complete=False):
    """Create the attendance sheet for a classroom's day, with optional sub-records."""
    day = truncate_to_day(date)
    with atomic_operation('create_attendance'):
        classroom = get_classroom(classroom_id)
        if Attendance.objects.filter(classroom=classroom, date=day).exists():
            raise Conflict('Attendance record already exists for this date')

        try:
            with transaction.atomic():
                attendance = Attendance.objects.create(
                    classroom=classroom,
                    date=day,
                    taken_by=taken_by,
                    session_topic=session_topic,
                    is_complete=is_complete,
                )
        except IntegrityError:
            raise Conflict('Attendance record already exists for this date')

        student_ids = [getattr(r['student'], 'pk', r['student']) for r in records]
        if len(set(student_ids)) != len(student_ids):
            raise ValidationError({'records': ['Each student may appear only once per attendance record.']})
        known = StudentProfile.objects.in_bulk(student_ids)
        missing = [sid for sid in student_ids if sid not in known]
        if missing:
            raise NotFound(f'No student found with id {missing[0]}')

        for record, student_id in zip(records, student_ids):
            status = record.get('status') or 'present'
            _validate_status(status)
            AttendanceRecord.objects.create(
                attendance=attendance,
                student=known[student_id],
                status=status,
                remarks=record.get('remarks') or '',
                minutes_late=record.get('minutes_late') or 0,
            )

    logger.info("Created attendance %s for classroom %s on %s (%d records)", attendance.pk, classroom.pk, day, len(records))
    return attendance


def add_student_record(attendance_id, student_id, status='present', remarks='', minutes_late=0):
    _validate_status(status)
    with atomic_operation('add_student_record'):
        attendance = get_attendance(attendance_id, lock=True)
        student = get_student(student_id)
        if attendance.records.filter(student=student).exists():
            raise Conflict('Student already exists in this attendance record')

        AttendanceRecord.objects.create(
            attendance=attendance,
            student=student,
            status=status,
            remarks=remarks or '',
            minutes_late=minutes_late or 0,
        )

    logger.info("Added student %s to attendance %s", student.pk, attendance.pk)
    return attendance


def update_student_record(attendance_id, student_id, **changes):
    """Change status / remarks / minutes_late of one student's sub-record."""
    unknown = set(changes) - set(RECORD_FIELDS)
    if unknown:
        raise ValidationError({field: ['This field cannot be updated.'] for field in sorted(unknown)})
    if 'status' in changes:
        _validate_status(changes['status'])

    with atomic_operation('update_student_record'):
        attendance = get_attendance(attendance_id, lock=True)
        record = attendance.records.filter(student_id=student_id).first()
        if record is None:
            raise NotFound('Student record not found in this attendance')

        for field, value in changes.items():
            setattr(record, field, value)
        if changes:
            record.save(update_fields=list(changes))

    return attendance


def remove_student_record(attendance_id, student_id):
    with atomic_operation('remove_student_record'):
        attendance = get_attendance(attendance_id, lock=True)
        deleted, _ = attendance.records.filter(student_id=student_id).delete()
        if not deleted:
            raise NotFound('Student record not found in this attendance')

    logger.info("Removed student %s from attendance %s", student_id, attendance.pk)
    return attendance


def _format_statistics(grouped):
    stats = {'total': 0}
    stats.update({status: 0 for status in STATUSES})
    for row in grouped:
        stats[row['status']] = row['count']
        stats['total'] += row['count']

    if stats['total'] > 0:
        for status in STATUSES:
            stats[f'{status}_percentage'] = round(stats[status] / stats['total'] * 100, 2)
    return stats


def _grouped_by_status(records):
    return records.order_by().values('status').annotate(count=Count('id'))


def classroom_statistics(classroom_id):
    """Status counts over every sub-record of every day in the classroom."""
    records = AttendanceRecord.objects.filter(attendance__classroom_id=classroom_id)
    return _format_statistics(_grouped_by_status(records))


def student_statistics(student_id, classroom_id=None):
    records = AttendanceRecord.objects.filter(student_id=student_id)
    if classroom_id:
        records = records.filter(attendance__classroom_id=classroom_id)
    return _format_statistics(_grouped_by_status(records))


def _date_range(queryset, field, start_date=None, end_date=None):
    if start_date:
        queryset = queryset.filter(**{f'{field}__gte': truncate_to_day(start_date)})
    if end_date:
        queryset = queryset.filter(**{f'{field}__lte': truncate_to_day(end_date)})
    return queryset


def student_attendance(student_id, classroom_id=None, start_date=None, end_date=None):
    """The student's own sub-record from each matching day, newest day first."""
    student = get_student(student_id)
    records = AttendanceRecord.objects.filter(student=student)
    if classroom_id:
        records = records.filter(attendance__classroom_id=classroom_id)
    records = _date_range(records, 'attendance__date', start_date, end_date)

    return list(
        records.order_by('-attendance__date', 'id').values(
            'attendance_id',
            'status',
            'remarks',
            'minutes_late',
            date=F('attendance__date'),
            classroom_id=F('attendance__classroom_id'),
            classroom_name=F('attendance__classroom__name'),
        )
    )


def classroom_attendance(classroom_id, start_date=None, end_date=None):
    classroom = get_classroom(classroom_id)
    days = Attendance.objects.filter(classroom=classroom).select_related('taken_by').prefetch_related('records')
    return _date_range(days, 'date', start_date, end_date).order_by('-date')


def attendance_by_date(classroom_id, date):
    return (
        Attendance.objects.filter(classroom_id=classroom_id, date=truncate_to_day(date))
        .prefetch_related('records__student__user')
        .first()
    )
