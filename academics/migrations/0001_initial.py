# Generated manually on 2026-10-18

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='TeacherProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('teacher_id', models.CharField(max_length=50, unique=True)),
                ('subjects', models.JSONField(blank=True, default=list)),
                ('qualifications', models.JSONField(blank=True, default=list)),
                ('hire_date', models.DateField(default=django.utils.timezone.localdate)),
                ('department', models.CharField(blank=True, max_length=100, null=True)),
                ('office_location', models.CharField(blank=True, max_length=100, null=True)),
                ('office_hours', models.JSONField(blank=True, default=list)),
                ('bio', models.TextField(blank=True, null=True)),
                ('employment_status', models.CharField(choices=[('full-time', 'Full time'), ('part-time', 'Part time'), ('substitute', 'Substitute'), ('contract', 'Contract')], default='full-time', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='teacher_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-hire_date', 'id'],
                'indexes': [
                    models.Index(fields=['department'], name='teacher_department_idx'),
                    models.Index(fields=['employment_status'], name='teacher_employment_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ClassRoom',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('subject', models.CharField(max_length=100)),
                ('grade_level', models.CharField(max_length=50)),
                ('schedule', models.JSONField(blank=True, default=list)),
                ('semester', models.CharField(choices=[('Fall', 'Fall'), ('Spring', 'Spring'), ('Summer', 'Summer'), ('Winter', 'Winter'), ('Year-round', 'Year-round')], max_length=20)),
                ('year', models.PositiveIntegerField()),
                ('is_active', models.BooleanField(default=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('syllabus', models.TextField(blank=True, null=True)),
                ('max_capacity', models.PositiveIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1)])),
                ('credits', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='classrooms', to='academics.teacherprofile')),
            ],
            options={
                'ordering': ['-created_at', 'id'],
                'indexes': [
                    models.Index(fields=['subject'], name='classroom_subject_idx'),
                    models.Index(fields=['grade_level'], name='classroom_grade_level_idx'),
                    models.Index(fields=['year', 'semester'], name='classroom_term_idx'),
                    models.Index(fields=['is_active'], name='classroom_active_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StudentProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('student_id', models.CharField(max_length=50, unique=True)),
                ('grade', models.CharField(max_length=50)),
                ('enrollment_date', models.DateField(default=django.utils.timezone.localdate)),
                ('guardian_name', models.CharField(max_length=255)),
                ('guardian_email', models.EmailField(max_length=254)),
                ('guardian_phone', models.CharField(max_length=20)),
                ('emergency_contact_name', models.CharField(blank=True, max_length=255, null=True)),
                ('emergency_contact_relationship', models.CharField(blank=True, max_length=100, null=True)),
                ('emergency_contact_phone', models.CharField(blank=True, max_length=20, null=True)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('special_needs', models.TextField(blank=True, null=True)),
                ('medical_info', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='student_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-enrollment_date', 'id'],
                'indexes': [
                    models.Index(fields=['grade'], name='student_grade_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Enrollment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('enrolled_at', models.DateTimeField(auto_now_add=True)),
                ('classroom', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='enrollments', to='academics.classroom')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='enrollments', to='academics.studentprofile')),
            ],
            options={
                'ordering': ['enrolled_at', 'id'],
                'constraints': [
                    models.UniqueConstraint(fields=('student', 'classroom'), name='unique_enrollment'),
                ],
            },
        ),
        migrations.AddField(
            model_name='studentprofile',
            name='classrooms',
            field=models.ManyToManyField(blank=True, related_name='students', through='academics.Enrollment', to='academics.classroom'),
        ),
    ]
