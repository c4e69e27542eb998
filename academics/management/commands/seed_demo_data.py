from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model
from django.utils import timezone
from random import randint, choice, random, sample
from datetime import timedelta

from academics import profiles, services
from academics.models import ClassRoom, StudentProfile, TeacherProfile
from attendance.models import Attendance
from attendance.services import create_attendance
from grades.models import Grade

User = get_user_model()

SUBJECTS = ['Mathematics', 'Science', 'English', 'History', 'Geography', 'Art']


class Command(BaseCommand):
    help = "Seed demo data: teachers, students, classrooms, enrollments, grades and attendance"

    def add_arguments(self, parser):
        parser.add_argument('--students', type=int, default=20, help='Number of students to create')
        parser.add_argument('--teachers', type=int, default=3, help='Number of teachers to create')
        parser.add_argument('--classes', type=int, default=4, help='Number of classrooms to create')
        parser.add_argument('--capacity', type=int, default=None, help='Max capacity of each classroom (unlimited if omitted)')
        parser.add_argument('--grades-per-student', type=int, default=3, help='Grades per enrollment')
        parser.add_argument('--attendance-days', type=int, default=7, help='Number of past days to create attendance for')

    def handle(self, *args, **options):
        num_students = options.get('students')
        num_teachers = options.get('teachers')
        num_classes = options.get('classes')
        capacity = options.get('capacity')
        grades_per_student = options.get('grades_per_student')
        attendance_days = options.get('attendance_days')

        if num_teachers < 1 and num_classes > 0:
            raise CommandError("At least one teacher is needed to own the classrooms.")
        if capacity is not None and capacity < 1:
            raise CommandError("--capacity must be at least 1.")

        # Create teachers
        teachers = []
        for i in range(1, num_teachers + 1):
            user = self._user(f"teacher{i}", f"Teacher{i}")
            teacher = TeacherProfile.objects.filter(user=user).first()
            if teacher is None:
                teacher = profiles.create_teacher_profile(
                    user.pk,
                    teacher_id=f"T{1000 + i}",
                    subjects=sample(SUBJECTS, 2),
                    department=choice(['Sciences', 'Humanities', 'Arts']),
                )
            teachers.append(teacher)
        self.stdout.write(self.style.SUCCESS(f"Teachers: {len(teachers)}"))

        # Create classrooms
        year = timezone.localdate().year
        classrooms = []
        for i in range(1, num_classes + 1):
            teacher = teachers[(i - 1) % len(teachers)]
            subject = choice(teacher.subjects) if teacher.subjects else choice(SUBJECTS)
            cls, _ = ClassRoom.objects.get_or_create(
                name=f"Class {i}",
                year=year,
                semester='Fall',
                defaults={
                    'subject': subject,
                    'grade_level': str(randint(6, 12)),
                    'teacher': teacher,
                    'max_capacity': capacity,
                },
            )
            classrooms.append(cls)
        self.stdout.write(self.style.SUCCESS(f"Classrooms: {len(classrooms)}"))

        # Create students and student profiles
        students = []
        for i in range(1, num_students + 1):
            user = self._user(f"student{i}", f"Student{i}")
            student = StudentProfile.objects.filter(user=user).first()
            if student is None:
                student = profiles.create_student_profile(
                    user.pk,
                    student_id=f"S{1000 + i}",
                    grade=str(randint(6, 12)),
                    guardian_name=f"Guardian of Student{i}",
                    guardian_email=f"guardian{i}@example.com",
                    guardian_phone=f"555-{1000 + i}",
                )
            students.append(student)
        self.stdout.write(self.style.SUCCESS(f"Students: {len(students)}"))

        # Enroll each student in up to two classrooms, respecting capacity
        enrolled = 0
        for student in students:
            for cls in sample(classrooms, min(2, len(classrooms))):
                if student.enrollments.filter(classroom=cls).exists() or cls.is_at_capacity():
                    continue
                services.enroll(student.pk, cls.pk)
                enrolled += 1
        self.stdout.write(self.style.SUCCESS(f"Enrollments created: {enrolled}"))

        # Grades for every enrollment
        grades_created = 0
        now = timezone.now()
        for cls in classrooms:
            for student in cls.students.all():
                for n in range(1, grades_per_student + 1):
                    due = now - timedelta(days=randint(1, 30))
                    Grade.objects.create(
                        student=student,
                        classroom=cls,
                        assignment_name=f"Assignment {n}",
                        assignment_type=choice(['homework', 'quiz', 'exam', 'project']),
                        score=randint(50, 100),
                        max_score=100,
                        weightage=choice([1, 2, 3]),
                        due_date=due,
                        submission_date=due + timedelta(days=choice([-1, 0, 0, 1])),
                        graded_by=cls.teacher.user,
                        graded_at=now,
                    )
                    grades_created += 1
        self.stdout.write(self.style.SUCCESS(f"Grades created: {grades_created}"))

        # Attendance for last attendance_days
        attendance_created = 0
        today = timezone.localdate()
        for cls in classrooms:
            roster = list(cls.students.all())
            for d in range(attendance_days):
                day = today - timedelta(days=d)
                if Attendance.objects.filter(classroom=cls, date=day).exists():
                    continue
                records = [
                    {'student': student, 'status': 'present' if random() > 0.1 else choice(['absent', 'late', 'excused'])}
                    for student in roster
                ]
                create_attendance(cls.pk, day, records=records, taken_by=cls.teacher.user, is_complete=True)
                attendance_created += 1
        self.stdout.write(self.style.SUCCESS(f"Attendance days created: {attendance_created}"))

        self.stdout.write(self.style.SUCCESS("Demo data seeding complete."))

    def _user(self, username, first_name):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"first_name": first_name, "last_name": "Demo", "email": f"{username}@example.com"},
        )
        if created:
            user.set_password('demo12345')
            user.save(update_fields=['password'])
        return user
