from blt.filtering.base import FilterRule
from blt.filtering.models import FilterResult, SeriesDetails


class SeriesFilter:
    """Splits the series of a study into kept and discarded.

    Pure: it never talks to Orthanc. Rules run in order and the first rule
    that objects to a series decides its audit record.
    """

    def __init__(self, rules: list[FilterRule]) -> None:
        self._rules = list(rules)

    def apply(self, series: list[SeriesDetails]) -> FilterResult:
        result = FilterResult()
        for details in series:
            for rule in self._rules:
                record = rule.evaluate(details)
                if record is not None:
                    result.discarded.append(details)
                    result.audit.append(record)
                    break
            else:
                result.kept.append(details)
        return result
