"""
Public doctor finder: substring search, speciality filter and ordering
over the doctor list.
"""
from typing import Iterable, List, Optional

from ..models.doctor import Doctor


class SortField:
    NAME = "name"
    EXPERIENCE = "experience"

    ALL = [NAME, EXPERIENCE]


class SortOrder:
    ASC = "asc"
    DESC = "desc"

    ALL = [ASC, DESC]


def _sort_key(sort_by: str):
    if sort_by == SortField.EXPERIENCE:
        return lambda d: d.experience or 0
    return lambda d: (d.name or "").casefold()


def specialities(doctors: Iterable[Doctor]) -> List[str]:
    """Distinct specialities in first-seen order."""
    seen: List[str] = []
    for doctor in doctors:
        if doctor.speciality and doctor.speciality not in seen:
            seen.append(doctor.speciality)
    return seen


def filter_and_sort_doctors(
    doctors: Iterable[Doctor],
    search: Optional[str] = None,
    speciality: Optional[str] = None,
    sort_by: str = SortField.NAME,
    order: str = SortOrder.ASC,
) -> List[Doctor]:
    """
    Keep doctors whose name or speciality contains ``search`` (case-insensitive)
    and, when given, whose speciality equals ``speciality`` exactly.
    """
    if sort_by not in SortField.ALL:
        raise ValueError(f"Invalid sort field. Choose from: {SortField.ALL}")
    if order not in SortOrder.ALL:
        raise ValueError(f"Invalid sort order. Choose from: {SortOrder.ALL}")

    needle = (search or "").strip().lower()
    matched = [
        d for d in doctors
        if (not needle or needle in (d.name or "").lower() or needle in (d.speciality or "").lower())
        and (not speciality or d.speciality == speciality)
    ]
    # sorted() is stable, so equal keys keep their stored order in both directions
    return sorted(matched, key=_sort_key(sort_by), reverse=(order == SortOrder.DESC))
