"""Student/teacher profile lifecycle, kept in step with ``User.role``."""
import logging

from django.contrib.auth import get_user_model

from attendance.models import Attendance, AttendanceRecord
from backend.exceptions import Conflict, NotFound
from grades.models import Grade
from .models import StudentProfile, TeacherProfile
from .services import atomic_operation, get_student, get_teacher

logger = logging.getLogger(__name__)

User = get_user_model()


def _get_user(user_id):
    try:
        return User.objects.select_for_update().get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'No user found with id {user_id}')


def _ensure_role(user, role):
    if user.role != role:
        user.role = role
        user.save(update_fields=['role'])


def create_student_profile(user_id, **data) -> StudentProfile:
    with atomic_operation('create_student_profile'):
        user = _get_user(user_id)
        if StudentProfile.objects.filter(user=user).exists():
            raise Conflict('User already has a student profile')

        _ensure_role(user, User.ROLE_STUDENT)
        student = StudentProfile.objects.create(user=user, **data)

    logger.info("Created student profile %s for user %s", student.pk, user.pk)
    return student


def create_teacher_profile(user_id, **data) -> TeacherProfile:
    subjects = data.pop('subjects', None) or []
    with atomic_operation('create_teacher_profile'):
        user = _get_user(user_id)
        if TeacherProfile.objects.filter(user=user).exists():
            raise Conflict('User already has a teacher profile')

        _ensure_role(user, User.ROLE_TEACHER)
        # Subjects behave as a set; keep the first occurrence of each
        teacher = TeacherProfile.objects.create(user=user, subjects=list(dict.fromkeys(subjects)), **data)

    logger.info("Created teacher profile %s for user %s", teacher.pk, user.pk)
    return teacher


def delete_teacher_profile(teacher_id):
    with atomic_operation('delete_teacher_profile'):
        teacher = get_teacher(teacher_id)
        classroom_count = teacher.classrooms.count()
        if classroom_count > 0:
            raise Conflict(
                f'Cannot delete teacher with {classroom_count} active classrooms. Reassign classrooms first.'
            )

        user = teacher.user
        teacher.delete()
        # Deleting the teacher profile drops the user back to the default role
        _ensure_role(user, User.ROLE_STUDENT)

    logger.info("Deleted teacher profile %s", teacher_id)


def delete_student_profile(student_id):
    """
    Delete a student who is no longer enrolled anywhere.

    Grades go with the student; their attendance sub-records are stripped
    and any attendance day left without sub-records is removed too.
    """
    with atomic_operation('delete_student_profile'):
        student = get_student(student_id)
        classroom_count = student.enrollments.count()
        if classroom_count > 0:
            raise Conflict(
                f'Cannot delete student enrolled in {classroom_count} classrooms. Withdraw student first.'
            )

        grades_deleted, _ = Grade.objects.filter(student=student).delete()

        attendance_ids = list(
            AttendanceRecord.objects.filter(student=student).values_list('attendance_id', flat=True).distinct()
        )
        AttendanceRecord.objects.filter(student=student).delete()
        emptied, _ = Attendance.objects.filter(pk__in=attendance_ids, records__isnull=True).delete()

        student.delete()

    logger.info(
        "Deleted student profile %s (%d grades, %d attendance days touched, %d emptied)",
        student_id, grades_deleted, len(attendance_ids), emptied,
    )


def add_subject(teacher_id, subject) -> TeacherProfile:
    with atomic_operation('add_subject'):
        teacher = TeacherProfile.objects.select_for_update().filter(pk=teacher_id).first()
        if teacher is None:
            raise NotFound(f'No teacher found with id {teacher_id}')
        if subject in teacher.subjects:
            raise Conflict(f'Teacher already has subject {subject}')
        teacher.subjects = teacher.subjects + [subject]
        teacher.save(update_fields=['subjects', 'updated_at'])
    return teacher


def remove_subject(teacher_id, subject) -> TeacherProfile:
    with atomic_operation('remove_subject'):
        teacher = TeacherProfile.objects.select_for_update().filter(pk=teacher_id).first()
        if teacher is None:
            raise NotFound(f'No teacher found with id {teacher_id}')
        if subject not in teacher.subjects:
            raise Conflict(f'Teacher does not have subject {subject}')
        teacher.subjects = [s for s in teacher.subjects if s != subject]
        teacher.save(update_fields=['subjects', 'updated_at'])
    return teacher


def delete_user(user_id):
    """Delete a user, going through the profile guards above first."""
    with atomic_operation('delete_user'):
        user = _get_user(user_id)
        student = StudentProfile.objects.filter(user=user).first()
        if student is not None:
            delete_student_profile(student.pk)
        teacher = TeacherProfile.objects.filter(user=user).first()
        if teacher is not None:
            delete_teacher_profile(teacher.pk)
        user.delete()

    logger.info("Deleted user %s", user_id)
