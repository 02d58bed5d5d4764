"""Tests for the recognition matcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import pytest

from attendface.face.matcher import FaceMatch, default_face_data, match_face
from attendface.face.profile import build_face_profile, prepare_query_descriptor

if TYPE_CHECKING:
    from attendface.face.clock import FixedClock
    from conftest import DescriptorFactory


def _employee(employee_id: str, face_data: object) -> dict[str, Any]:
    return {"id": employee_id, "name": f"Employee {employee_id}", "faceData": face_data}


@dataclass
class _EmployeeRecord:
    id: str
    face_data: object = None


# ---------------------------------------------------------------------------
# default_face_data
# ---------------------------------------------------------------------------


class TestDefaultFaceData:
    def test_mapping_keys(self) -> None:
        assert default_face_data({"faceData": 1}) == 1
        assert default_face_data({"face_data": 2}) == 2
        assert default_face_data({"faceDescriptors": 3}) == 3

    def test_attribute(self) -> None:
        assert default_face_data(_EmployeeRecord(id="e1", face_data=[1.0])) == [1.0]

    def test_missing(self) -> None:
        assert default_face_data({"id": "e1"}) is None
        assert default_face_data(object()) is None


# ---------------------------------------------------------------------------
# match_face
# ---------------------------------------------------------------------------


class TestMatchFace:
    def test_exact_capture_matches_with_zero_distance(
        self, descriptors: DescriptorFactory, clock: FixedClock
    ) -> None:
        raw = descriptors.unrelated()
        target = _employee("e1", build_face_profile([raw], clock=clock).to_storage())
        other = _employee("e2", build_face_profile([descriptors.unrelated()], clock=clock).to_storage())

        result = match_face(prepare_query_descriptor(raw), [other, target])

        assert result is not None
        assert result.employee is target
        assert result.distance == pytest.approx(0.0, abs=1e-6)
        assert result.confidence == pytest.approx(1.0, abs=1e-6)

    def test_close_query_matches_right_employee(self, descriptors: DescriptorFactory, clock: FixedClock) -> None:
        alice = descriptors.similar(5)
        bob = descriptors.similar(5)
        employees = [
            _employee("alice", build_face_profile(alice[:4], clock=clock).to_storage()),
            _employee("bob", build_face_profile(bob[:4], clock=clock).to_storage()),
        ]

        result = match_face(prepare_query_descriptor(bob[4]), employees)

        assert result is not None
        assert result.employee["id"] == "bob"
        assert result.distance < 0.6

    def test_no_match_beyond_threshold(self, descriptors: DescriptorFactory, clock: FixedClock) -> None:
        employees = [
            _employee(f"e{i}", build_face_profile(descriptors.similar(3), clock=clock).to_storage())
            for i in range(3)
        ]
        assert match_face(prepare_query_descriptor(descriptors.unrelated()), employees) is None

    def test_threshold_is_strict(self, descriptors: DescriptorFactory, clock: FixedClock) -> None:
        raw = descriptors.unrelated()
        employees = [_employee("e1", [raw])]
        assert match_face(prepare_query_descriptor(raw), employees, threshold=0.0) is None

    def test_custom_threshold(self, descriptors: DescriptorFactory) -> None:
        face = descriptors.similar(2, noise=0.5)
        employees = [_employee("e1", [face[0]])]
        query = prepare_query_descriptor(face[1])

        assert match_face(query, employees, threshold=1.5) is not None
        assert match_face(query, employees, threshold=0.05) is None

    def test_exact_tie_goes_to_first_seen(self, descriptors: DescriptorFactory, clock: FixedClock) -> None:
        raw = descriptors.unrelated()
        stored = build_face_profile([raw], clock=clock).to_storage()
        first = _employee("first", stored)
        second = _employee("second", stored)

        query = prepare_query_descriptor(raw)
        results = [match_face(query, [first, second]) for _ in range(3)]

        assert all(result is not None and result.employee is first for result in results)
        assert len({result.distance for result in results if result is not None}) == 1

    def test_employees_without_vectors_skipped(self, descriptors: DescriptorFactory) -> None:
        raw = descriptors.unrelated()
        employees = [
            _employee("none", None),
            _employee("broken", {"captures": [{"vector": [1.0, 2.0]}]}),
            _employee("legacy", [raw]),
        ]

        result = match_face(prepare_query_descriptor(raw), employees)

        assert result is not None
        assert result.employee["id"] == "legacy"

    def test_matches_on_centroid_only_record(self, descriptors: DescriptorFactory) -> None:
        raw = descriptors.unrelated()
        employees = [_employee("old", {"centroid": raw})]
        result = match_face(prepare_query_descriptor(raw), employees)
        assert result is not None

    def test_custom_face_data_accessor(self, descriptors: DescriptorFactory, clock: FixedClock) -> None:
        raw = descriptors.unrelated()
        records = [
            _EmployeeRecord(id="e1", face_data=build_face_profile([descriptors.unrelated()], clock=clock)),
            _EmployeeRecord(id="e2", face_data=build_face_profile([raw], clock=clock)),
        ]

        result = match_face(prepare_query_descriptor(raw), records, face_data=lambda record: record.face_data)

        assert result is not None
        assert result.employee.id == "e2"

    def test_empty_employee_list(self, descriptors: DescriptorFactory) -> None:
        assert match_face(prepare_query_descriptor(descriptors.unrelated()), []) is None

    def test_employee_snapshot_not_mutated(self, descriptors: DescriptorFactory, clock: FixedClock) -> None:
        raw = descriptors.unrelated()
        stored = build_face_profile([raw], clock=clock).to_storage()
        employees = [_employee("e1", stored)]
        before = repr(employees)

        match_face(prepare_query_descriptor(raw), employees)

        assert repr(employees) == before


class TestFaceMatch:
    def test_confidence(self) -> None:
        assert FaceMatch(employee="e1", distance=0.25).confidence == pytest.approx(0.75)
