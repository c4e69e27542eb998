from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

# Use the project's custom user model
User = settings.AUTH_USER_MODEL


class TeacherProfile(models.Model):
    EMPLOYMENT_CHOICES = [
        ('full-time', 'Full time'),
        ('part-time', 'Part time'),
        ('substitute', 'Substitute'),
        ('contract', 'Contract'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='teacher_profile')
    teacher_id = models.CharField(max_length=50, unique=True)
    subjects = models.JSONField(default=list, blank=True)
    qualifications = models.JSONField(default=list, blank=True)
    hire_date = models.DateField(default=timezone.localdate)
    department = models.CharField(max_length=100, blank=True, null=True)
    office_location = models.CharField(max_length=100, blank=True, null=True)
    office_hours = models.JSONField(default=list, blank=True)
    bio = models.TextField(blank=True, null=True)
    employment_status = models.CharField(max_length=20, choices=EMPLOYMENT_CHOICES, default='full-time')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-hire_date', 'id']
        indexes = [
            models.Index(fields=['department'], name='teacher_department_idx'),
            models.Index(fields=['employment_status'], name='teacher_employment_idx'),
        ]

    def __str__(self):
        return f"{self.user.get_full_name() or self.user.username} ({self.teacher_id})"


class ClassRoom(models.Model):
    SEMESTER_CHOICES = [
        ('Fall', 'Fall'),
        ('Spring', 'Spring'),
        ('Summer', 'Summer'),
        ('Winter', 'Winter'),
        ('Year-round', 'Year-round'),
    ]

    name = models.CharField(max_length=100)
    subject = models.CharField(max_length=100)
    grade_level = models.CharField(max_length=50)
    teacher = models.ForeignKey(TeacherProfile, on_delete=models.PROTECT, related_name='classrooms')
    schedule = models.JSONField(default=list, blank=True)
    semester = models.CharField(max_length=20, choices=SEMESTER_CHOICES)
    year = models.PositiveIntegerField()
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True, null=True)
    syllabus = models.TextField(blank=True, null=True)
    max_capacity = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(1)])
    credits = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', 'id']
        indexes = [
            models.Index(fields=['subject'], name='classroom_subject_idx'),
            models.Index(fields=['grade_level'], name='classroom_grade_level_idx'),
            models.Index(fields=['year', 'semester'], name='classroom_term_idx'),
            models.Index(fields=['is_active'], name='classroom_active_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.subject}, {self.semester} {self.year})"

    @property
    def enrollment_count(self):
        return self.enrollments.count()

    def is_at_capacity(self, enrolled_count=None):
        """No capacity configured means unlimited."""
        if not self.max_capacity:
            return False
        if enrolled_count is None:
            enrolled_count = self.enrollment_count
        return enrolled_count >= self.max_capacity


class StudentProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='student_profile')
    student_id = models.CharField(max_length=50, unique=True)
    grade = models.CharField(max_length=50)
    enrollment_date = models.DateField(default=timezone.localdate)
    classrooms = models.ManyToManyField(ClassRoom, through='Enrollment', related_name='students', blank=True)
    # Guardian contact
    guardian_name = models.CharField(max_length=255)
    guardian_email = models.EmailField()
    guardian_phone = models.CharField(max_length=20)
    emergency_contact_name = models.CharField(max_length=255, blank=True, null=True)
    emergency_contact_relationship = models.CharField(max_length=100, blank=True, null=True)
    emergency_contact_phone = models.CharField(max_length=20, blank=True, null=True)
    date_of_birth = models.DateField(blank=True, null=True)
    special_needs = models.TextField(blank=True, null=True)
    medical_info = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-enrollment_date', 'id']
        indexes = [
            models.Index(fields=['grade'], name='student_grade_idx'),
        ]

    def __str__(self):
        return f"{self.user.get_full_name() or self.user.username} ({self.student_id})"


class Enrollment(models.Model):
    """Membership row behind both StudentProfile.classrooms and ClassRoom.students."""
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='enrollments')
    classroom = models.ForeignKey(ClassRoom, on_delete=models.CASCADE, related_name='enrollments')
    enrolled_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['enrolled_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['student', 'classroom'], name='unique_enrollment'),
        ]

    def __str__(self):
        return f"{self.student.student_id} -> {self.classroom.name}"
