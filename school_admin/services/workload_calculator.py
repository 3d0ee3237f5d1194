from typing import Any, Dict, Iterable, List

from school_admin.models import SubjectAssignment, Teacher
from school_admin.schemas.enums import WorkloadStatus


class WorkloadCalculator:
    """Weekly lesson load of a teacher. Reporting only; never gates a write."""

    @staticmethod
    def status(total_lessons: int, teacher: Teacher) -> WorkloadStatus:
        if total_lessons > teacher.max_weekly_lessons:
            return WorkloadStatus.OVERLOADED
        if total_lessons < teacher.min_weekly_lessons:
            return WorkloadStatus.UNDERLOADED
        return WorkloadStatus.OPTIMAL

    def calculate(self, teacher: Teacher, assignments: Iterable[SubjectAssignment]) -> Dict[str, Any]:
        assignments = list(assignments)
        total = sum(a.weekly_periods for a in assignments)
        targets = {(a.stream_id, a.classroom_id) for a in assignments}
        max_lessons = teacher.max_weekly_lessons

        return {
            "teacher_id": teacher.id,
            "teacher_name": teacher.name,
            "total_lessons": total,
            "subject_count": len({a.subject_id for a in assignments}),
            "class_count": len(targets),
            "max_lessons": max_lessons,
            "min_lessons": teacher.min_weekly_lessons,
            "status": self.status(total, teacher),
            "available_capacity": max(0, max_lessons - total),
            "percentage_used": round(total / max_lessons * 100, 1) if max_lessons > 0 else 0.0,
        }

    @staticmethod
    def summarize(workloads: List[Dict[str, Any]]) -> Dict[str, Any]:
        count = len(workloads)
        by_status = {status: 0 for status in WorkloadStatus}
        for workload in workloads:
            by_status[workload["status"]] += 1
        total_lessons = sum(w["total_lessons"] for w in workloads)
        return {
            "total_teachers": count,
            "overloaded": by_status[WorkloadStatus.OVERLOADED],
            "underloaded": by_status[WorkloadStatus.UNDERLOADED],
            "optimal": by_status[WorkloadStatus.OPTIMAL],
            "average_lessons": round(total_lessons / count, 1) if count else 0.0,
        }
