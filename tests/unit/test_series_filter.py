from unittest.mock import MagicMock

from blt.filtering.base import FilterRule
from blt.filtering.factory import SeriesFilterFactory
from blt.filtering.models import AuditRecord, SeriesDetails
from blt.filtering.rules import ModalityRule
from blt.filtering.series_filter import SeriesFilter


def _series(series_id: str, modality: str) -> SeriesDetails:
    return SeriesDetails(
        id=series_id,
        modality=modality,
        series_description=f"{modality} series",
        series_instance_uid=f"1.2.3.{series_id}",
    )


class TestModalityRule:
    def test_matches_forbidden_modality(self) -> None:
        record = ModalityRule("US").evaluate(_series("s1", "US"))
        assert record is not None
        assert record.tag == "Modality"
        assert record.value == "US"
        assert record.reason == "ultrasound images should not be uploaded to BLT"
        assert record.series_id == "s1"
        assert record.series_instance_uid == "1.2.3.s1"

    def test_ignores_other_modalities(self) -> None:
        assert ModalityRule("US").evaluate(_series("s1", "CT")) is None

    def test_generic_reason_for_other_modality(self) -> None:
        record = ModalityRule("sr").evaluate(_series("s1", "SR"))
        assert record is not None
        assert "SR" in record.reason


class TestSeriesFilter:
    def test_discards_only_matching_series(self) -> None:
        series = [_series("s1", "CT"), _series("s2", "US"), _series("s3", "MR")]
        result = SeriesFilter([ModalityRule("US")]).apply(series)
        assert [s.id for s in result.discarded] == ["s2"]
        assert [s.id for s in result.kept] == ["s1", "s3"]
        assert len(result.audit) == 1
        assert result.audit[0].tag == "Modality"
        assert not result.fully_filtered

    def test_all_matching_is_fully_filtered(self) -> None:
        series = [_series("s1", "US"), _series("s2", "US")]
        result = SeriesFilter([ModalityRule("US")]).apply(series)
        assert len(result.discarded) == 2
        assert result.fully_filtered

    def test_no_rules_keeps_everything(self) -> None:
        result = SeriesFilter([]).apply([_series("s1", "US")])
        assert len(result.kept) == 1
        assert result.audit == []

    def test_empty_study_is_fully_filtered(self) -> None:
        assert SeriesFilter([ModalityRule("US")]).apply([]).fully_filtered

    def test_first_objecting_rule_wins(self) -> None:
        first = MagicMock(spec=FilterRule)
        second = MagicMock(spec=FilterRule)
        first.evaluate.return_value = AuditRecord(tag="A", value="1", reason="first")
        result = SeriesFilter([first, second]).apply([_series("s1", "CT")])
        assert result.audit[0].reason == "first"
        second.evaluate.assert_not_called()


class TestSeriesFilterFactory:
    def test_uses_configured_modality(self) -> None:
        settings = MagicMock(forbidden_modality="US")
        series_filter = SeriesFilterFactory.create(settings)
        assert series_filter.apply([_series("s1", "US")]).fully_filtered

    def test_blank_modality_disables_rule(self) -> None:
        settings = MagicMock(forbidden_modality="")
        series_filter = SeriesFilterFactory.create(settings)
        assert not series_filter.apply([_series("s1", "US")]).fully_filtered
