from django.conf import settings
from django.db import models

from academics.models import ClassRoom, StudentProfile

User = settings.AUTH_USER_MODEL


class Attendance(models.Model):
    """One attendance sheet per classroom per calendar day"""
    classroom = models.ForeignKey(ClassRoom, on_delete=models.CASCADE, related_name='attendance_days')
    date = models.DateField()
    taken_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='attendance_taken')
    session_topic = models.CharField(max_length=255, blank=True, null=True)
    is_complete = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date', 'id']
        constraints = [
            models.UniqueConstraint(fields=['classroom', 'date'], name='unique_attendance_per_day'),
        ]
        indexes = [
            models.Index(fields=['date'], name='attendance_date_idx'),
        ]

    def __str__(self):
        return f"{self.classroom.name} - {self.date}"


class AttendanceRecord(models.Model):
    STATUS_CHOICES = [
        ('present', 'Present'),
        ('absent', 'Absent'),
        ('late', 'Late'),
        ('excused', 'Excused'),
    ]

    attendance = models.ForeignKey(Attendance, on_delete=models.CASCADE, related_name='records')
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='attendance_records')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    remarks = models.TextField(blank=True, default='')
    minutes_late = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['attendance', 'student'], name='unique_student_per_attendance'),
        ]

    def __str__(self):
        return f"{self.student.student_id} - {self.attendance.date} - {self.status}"
