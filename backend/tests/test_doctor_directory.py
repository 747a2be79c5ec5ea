import pytest

from app.models.doctor import Doctor
from app.services.doctor_directory import filter_and_sort_doctors, specialities


def _doctor(name, speciality, experience=None):
    return Doctor(name=name, speciality=speciality, experience=experience, email=f"{name}@x.test")


@pytest.fixture()
def doctors():
    return [
        _doctor("Dr. Richard James", "General physician", 4),
        _doctor("Dr. Emily Larson", "Gynecologist", 3),
        _doctor("Dr. Sarah Patel", "Dermatologist", 1),
        _doctor("Dr. Christopher Lee", "Pediatricians", None),
        _doctor("Dr. Jennifer Garcia", "Neurologist", 10),
        _doctor("Dr. Andrew Williams", "Neurologist", 4),
    ]


class TestFilterAndSortDoctors:
    def test_default_sorts_by_name_ascending(self, doctors):
        names = [d.name for d in filter_and_sort_doctors(doctors)]
        assert names == sorted(names, key=str.casefold)

    def test_search_matches_name_case_insensitive(self, doctors):
        result = filter_and_sort_doctors(doctors, search="PATEL")
        assert [d.name for d in result] == ["Dr. Sarah Patel"]

    def test_search_matches_speciality(self, doctors):
        result = filter_and_sort_doctors(doctors, search="neuro")
        assert {d.name for d in result} == {"Dr. Jennifer Garcia", "Dr. Andrew Williams"}

    def test_speciality_filter_is_exact(self, doctors):
        assert filter_and_sort_doctors(doctors, speciality="Neuro") == []
        result = filter_and_sort_doctors(doctors, speciality="Neurologist")
        assert len(result) == 2

    def test_search_and_speciality_combine(self, doctors):
        result = filter_and_sort_doctors(doctors, search="andrew", speciality="Neurologist")
        assert [d.name for d in result] == ["Dr. Andrew Williams"]

    def test_experience_descending(self, doctors):
        result = filter_and_sort_doctors(doctors, sort_by="experience", order="desc")
        assert [d.experience for d in result] == [10, 4, 4, 3, 1, None]

    def test_missing_experience_sorts_as_zero(self, doctors):
        result = filter_and_sort_doctors(doctors, sort_by="experience", order="asc")
        assert result[0].name == "Dr. Christopher Lee"

    def test_equal_keys_keep_stored_order(self, doctors):
        result = filter_and_sort_doctors(doctors, sort_by="experience", order="asc")
        four_years = [d.name for d in result if d.experience == 4]
        assert four_years == ["Dr. Richard James", "Dr. Andrew Williams"]

    def test_missing_name_sorts_first(self):
        result = filter_and_sort_doctors([_doctor("Dr. Zed", "X"), _doctor(None, "Y")])
        assert result[0].name is None

    def test_invalid_sort_field(self, doctors):
        with pytest.raises(ValueError, match="Invalid sort field"):
            filter_and_sort_doctors(doctors, sort_by="fees")

    def test_invalid_sort_order(self, doctors):
        with pytest.raises(ValueError, match="Invalid sort order"):
            filter_and_sort_doctors(doctors, order="sideways")


def test_specialities_distinct_in_first_seen_order(doctors):
    assert specialities(doctors) == [
        "General physician",
        "Gynecologist",
        "Dermatologist",
        "Pediatricians",
        "Neurologist",
    ]
