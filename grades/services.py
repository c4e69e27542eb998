"""Grade aggregation: weighted per-student averages and classroom statistics."""
from django.db.models import Avg, Count, ExpressionWrapper, F, FloatField, Max, Min, Sum

from academics.services import get_student
from .models import Grade

PERCENTAGE = ExpressionWrapper(F('score') * 100.0 / F('max_score'), output_field=FloatField())
WEIGHTED_PERCENTAGE = ExpressionWrapper(
    F('score') * 100.0 / F('max_score') * F('weightage'), output_field=FloatField()
)


def student_average(student_id, classroom_id):
    """
    Weighted average percentage of a student's grades in one classroom.

    sum(percentage * weightage) / sum(weightage), rounded to 2 decimals.
    Returns 0 when there are no grades or every weightage is 0.
    """
    totals = Grade.objects.filter(student_id=student_id, classroom_id=classroom_id).aggregate(
        weighted=Sum(WEIGHTED_PERCENTAGE),
        weight=Sum('weightage'),
    )
    if not totals['weight']:
        return 0
    return round(totals['weighted'] / totals['weight'], 2)


def classroom_statistics(classroom_id):
    """Unweighted statistics over every grade recorded in a classroom."""
    grades = Grade.objects.filter(classroom_id=classroom_id).order_by()
    summary = grades.annotate(pct=PERCENTAGE).aggregate(
        count=Count('id'),
        average=Avg('pct'),
        highest=Max('pct'),
        lowest=Min('pct'),
    )
    if not summary['count']:
        return {
            'average_score': 0,
            'highest_score': 0,
            'lowest_score': 0,
            'assignment_count': 0,
            'assignment_types': {},
        }

    by_type = grades.values('assignment_type').annotate(count=Count('id'))
    return {
        'average_score': round(summary['average'], 2),
        'highest_score': round(summary['highest'], 2),
        'lowest_score': round(summary['lowest'], 2),
        'assignment_count': summary['count'],
        'assignment_types': {row['assignment_type']: row['count'] for row in by_type},
    }


def student_grades(student_id, classroom_id=None):
    """A student's grades (newest first), with the weighted average when scoped to a classroom."""
    student = get_student(student_id)
    grades = Grade.objects.filter(student=student).select_related('classroom').order_by('-submission_date', 'id')
    average = None
    if classroom_id:
        grades = grades.filter(classroom_id=classroom_id)
        average = student_average(student.pk, classroom_id)
    return grades, average
