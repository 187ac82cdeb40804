from blt.config.settings import Settings
from blt.filtering.base import FilterRule
from blt.filtering.rules import ModalityRule
from blt.filtering.series_filter import SeriesFilter


class SeriesFilterFactory:
    """Creates the configured series filter."""

    @classmethod
    def create(cls, settings: Settings) -> SeriesFilter:
        rules: list[FilterRule] = []
        if settings.forbidden_modality.strip():
            rules.append(ModalityRule(settings.forbidden_modality))
        return SeriesFilter(rules)
