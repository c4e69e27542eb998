from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from academics.models import ClassRoom, StudentProfile

User = settings.AUTH_USER_MODEL


class Grade(models.Model):
    """A scored assignment for one student in one classroom"""
    ASSIGNMENT_TYPES = [
        ('quiz', 'Quiz'),
        ('exam', 'Exam'),
        ('homework', 'Homework'),
        ('project', 'Project'),
        ('participation', 'Participation'),
        ('midterm', 'Midterm'),
        ('final', 'Final'),
        ('other', 'Other'),
    ]

    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='grades')
    classroom = models.ForeignKey(ClassRoom, on_delete=models.CASCADE, related_name='grades')
    assignment_name = models.CharField(max_length=200)
    assignment_type = models.CharField(max_length=20, choices=ASSIGNMENT_TYPES)
    score = models.FloatField(validators=[MinValueValidator(0)])
    max_score = models.FloatField(validators=[MinValueValidator(0.01)])
    weightage = models.FloatField(default=1, validators=[MinValueValidator(0), MaxValueValidator(100)])
    submission_date = models.DateTimeField(default=timezone.now)
    due_date = models.DateTimeField(null=True, blank=True)

    # Auto-calculated
    late_submission = models.BooleanField(default=False)

    comments = models.TextField(blank=True)
    graded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='graded')
    graded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-submission_date', 'id']
        indexes = [
            models.Index(fields=['student', 'classroom'], name='grade_student_classroom_idx'),
            models.Index(fields=['assignment_type'], name='grade_assignment_type_idx'),
        ]

    def save(self, *args, **kwargs):
        # Late flag is derived whenever the grade is written
        self.late_submission = bool(
            self.due_date and self.submission_date and self.submission_date > self.due_date
        )
        super().save(*args, **kwargs)

    @property
    def percentage(self):
        return round(self.score / self.max_score * 100, 2) if self.max_score else 0

    def __str__(self):
        return f"{self.student.student_id} - {self.assignment_name} ({self.score}/{self.max_score})"
