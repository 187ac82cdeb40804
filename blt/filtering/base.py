from abc import ABC, abstractmethod

from blt.filtering.models import AuditRecord, SeriesDetails


class FilterRule(ABC):
    """Contract for a single series-discarding rule."""

    @abstractmethod
    def evaluate(self, series: SeriesDetails) -> AuditRecord | None:
        """Decide whether a series must be discarded.

        Args:
            series: Descriptive tags of the series.

        Returns:
            An AuditRecord naming the tag, value and reason if the series
            must be discarded, otherwise None.
        """
