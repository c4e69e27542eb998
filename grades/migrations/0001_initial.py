# Generated manually on 2026-10-18

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Grade',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assignment_name', models.CharField(max_length=200)),
                ('assignment_type', models.CharField(choices=[('quiz', 'Quiz'), ('exam', 'Exam'), ('homework', 'Homework'), ('project', 'Project'), ('participation', 'Participation'), ('midterm', 'Midterm'), ('final', 'Final'), ('other', 'Other')], max_length=20)),
                ('score', models.FloatField(validators=[django.core.validators.MinValueValidator(0)])),
                ('max_score', models.FloatField(validators=[django.core.validators.MinValueValidator(0.01)])),
                ('weightage', models.FloatField(default=1, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('submission_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('due_date', models.DateTimeField(blank=True, null=True)),
                ('late_submission', models.BooleanField(default=False)),
                ('comments', models.TextField(blank=True)),
                ('graded_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('classroom', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grades', to='academics.classroom')),
                ('graded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='graded', to=settings.AUTH_USER_MODEL)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grades', to='academics.studentprofile')),
            ],
            options={
                'ordering': ['-submission_date', 'id'],
                'indexes': [
                    models.Index(fields=['student', 'classroom'], name='grade_student_classroom_idx'),
                    models.Index(fields=['assignment_type'], name='grade_assignment_type_idx'),
                ],
            },
        ),
    ]
