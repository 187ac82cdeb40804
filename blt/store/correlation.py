from blt.models.values import AccessionNumber
from blt.store.exceptions import InternalConsistencyFault


class JobCorrelation:
    """One-to-one mapping between external ids of one stage and accession numbers.

    Kept as two one-directional dicts; every write keeps them mirror images
    of each other.
    """

    def __init__(self, stage: str) -> None:
        self._stage = stage
        self._by_id: dict[str, AccessionNumber] = {}
        self._by_accession_number: dict[AccessionNumber, str] = {}

    @property
    def stage(self) -> str:
        return self._stage

    def __len__(self) -> int:
        return len(self._by_id)

    def insert(self, external_id: str, accession_number: AccessionNumber) -> None:
        """Add a pair.

        Inserting the exact pair again is a no-op.

        Raises:
            InternalConsistencyFault: if either side is already paired with
                something else.
        """
        current = self._by_id.get(external_id)
        if current is not None and current != accession_number:
            raise InternalConsistencyFault(
                f"{self._stage} id {external_id} already belongs to "
                f"AccessionNumber {current}, refusing to pair it with {accession_number}"
            )
        current_id = self._by_accession_number.get(accession_number)
        if current_id is not None and current_id != external_id:
            raise InternalConsistencyFault(
                f"AccessionNumber {accession_number} already has {self._stage} id "
                f"{current_id}, refusing to pair it with {external_id}"
            )
        self._by_id[external_id] = accession_number
        self._by_accession_number[accession_number] = external_id

    def replace(self, external_id: str, accession_number: AccessionNumber) -> None:
        """Add a pair, first dropping any pair that shares either side with it."""
        old_accession_number = self._by_id.pop(external_id, None)
        if old_accession_number is not None:
            del self._by_accession_number[old_accession_number]
        old_id = self._by_accession_number.pop(accession_number, None)
        if old_id is not None:
            del self._by_id[old_id]
        self.insert(external_id, accession_number)

    def has_id(self, external_id: str) -> bool:
        return external_id in self._by_id

    def has_accession_number(self, accession_number: AccessionNumber) -> bool:
        return accession_number in self._by_accession_number

    def accession_number_of(self, external_id: str) -> AccessionNumber | None:
        return self._by_id.get(external_id)

    def id_of(self, accession_number: AccessionNumber) -> str | None:
        return self._by_accession_number.get(accession_number)
