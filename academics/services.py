"""
Enrollment management between students and classrooms.

Membership lives in a single ``Enrollment`` table, so a student's classroom
set and a classroom's student set are two views of the same rows. Every
mutation runs inside one transaction with the classroom row locked, which
serializes concurrent enroll/withdraw calls on the same classroom and keeps
the capacity check honest.
"""
import logging
from contextlib import contextmanager

from django.db import IntegrityError, OperationalError, transaction

from backend.exceptions import CapacityExceeded, Conflict, NotFound, TransientError, ValidationError
from .models import ClassRoom, Enrollment, StudentProfile, TeacherProfile

logger = logging.getLogger(__name__)


@contextmanager
def atomic_operation(name):
    """``transaction.atomic`` that reports storage-level conflicts as TransientError."""
    try:
        with transaction.atomic():
            yield
    except OperationalError as exc:
        logger.warning("%s rolled back on storage conflict: %s", name, exc)
        raise TransientError() from exc


def get_student(student_id) -> StudentProfile:
    try:
        return StudentProfile.objects.get(pk=student_id)
    except (StudentProfile.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'No student found with id {student_id}')


def get_teacher(teacher_id) -> TeacherProfile:
    try:
        return TeacherProfile.objects.get(pk=teacher_id)
    except (TeacherProfile.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'No teacher found with id {teacher_id}')


def get_classroom(classroom_id, lock=False) -> ClassRoom:
    queryset = ClassRoom.objects.all()
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=classroom_id)
    except (ClassRoom.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'No classroom found with id {classroom_id}')


def enroll(student_id, classroom_id):
    """Enroll a student in a classroom and return the refreshed (student, classroom) pair."""
    with atomic_operation('enroll'):
        student = get_student(student_id)
        classroom = get_classroom(classroom_id, lock=True)

        memberships = Enrollment.objects.filter(classroom=classroom)
        if memberships.filter(student=student).exists():
            raise Conflict('Student is already enrolled in this classroom')

        if classroom.is_at_capacity(memberships.count()):
            logger.warning("Enrollment of student %s rejected: classroom %s is full", student.pk, classroom.pk)
            raise CapacityExceeded()

        try:
            # Savepoint so a lost race on the unique constraint leaves the outer transaction usable
            with transaction.atomic():
                Enrollment.objects.create(student=student, classroom=classroom)
        except IntegrityError:
            raise Conflict('Student is already enrolled in this classroom')

    logger.info("Enrolled student %s in classroom %s", student.pk, classroom.pk)
    student.refresh_from_db()
    classroom.refresh_from_db()
    return student, classroom


def withdraw(student_id, classroom_id):
    """Remove a student from a classroom and return the refreshed (student, classroom) pair."""
    with atomic_operation('withdraw'):
        student = get_student(student_id)
        classroom = get_classroom(classroom_id, lock=True)

        deleted, _ = Enrollment.objects.filter(student=student, classroom=classroom).delete()
        if not deleted:
            raise Conflict('Student is not enrolled in this classroom')

    logger.info("Withdrew student %s from classroom %s", student.pk, classroom.pk)
    student.refresh_from_db()
    classroom.refresh_from_db()
    return student, classroom


def update_classroom(classroom_id, **fields) -> ClassRoom:
    """
    Apply field changes to a classroom.

    A new ``max_capacity`` is compared with the enrollment count while the
    classroom row is locked, the same lock ``enroll`` takes, so no enrollment
    can slip in between the check and the save.
    """
    with atomic_operation('update_classroom'):
        classroom = get_classroom(classroom_id, lock=True)
        capacity = fields.get('max_capacity')
        if capacity is not None:
            enrolled = classroom.enrollments.count()
            if capacity < enrolled:
                raise ValidationError({
                    'max_capacity': [f'Capacity cannot be lower than the {enrolled} students already enrolled.'],
                })

        for name, value in fields.items():
            setattr(classroom, name, value)
        classroom.save()

    logger.info("Updated classroom %s (%s)", classroom.pk, ', '.join(sorted(fields)) or 'no changes')
    return classroom


def delete_classroom(classroom_id):
    """
    Delete a classroom together with every reference to it.

    The teacher's owned set and each student's classroom set lose the
    classroom; the classroom's grades and attendance days are removed with
    it. Nothing is applied unless everything is.
    """
    with atomic_operation('delete_classroom'):
        classroom = get_classroom(classroom_id, lock=True)
        teacher_id = classroom.teacher_id
        student_ids = list(classroom.enrollments.values_list('student_id', flat=True))

        Enrollment.objects.filter(classroom=classroom).delete()
        # Grades and attendance days are owned by the classroom and cascade with it
        classroom.delete()

    logger.info(
        "Deleted classroom %s (teacher %s, %d students withdrawn)",
        classroom_id, teacher_id, len(student_ids),
    )
    return {'teacher': teacher_id, 'students': student_ids}


def student_classrooms(student_id):
    student = get_student(student_id)
    return student.classrooms.select_related('teacher__user').order_by('-year', 'semester')


def teacher_classrooms(teacher_id):
    teacher = get_teacher(teacher_id)
    return teacher.classrooms.prefetch_related('students').order_by('-year', 'semester')
