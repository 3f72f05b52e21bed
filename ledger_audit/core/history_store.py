import json
import os
import tempfile
from typing import Any, Dict, Iterator, Optional, Set, Tuple

from .errors import MalformedEvent, NotFound, RecordConflict
from .logger import get_logger

logger = get_logger("HistoryStore")

RECORD_SUFFIX = ".json"


class HistoryStore:
    """
    Append-only, file-per-index store of encoded transactions.
    Layout: <directory>/<index>.json

    The stored files ARE the checkpoint: the next index to fetch is
    highest_stored_index() + 1. Records are written atomically (temp file +
    rename), so a crash never leaves a partial record behind.
    """
    def __init__(self, directory: str = "backup"):
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, index: int) -> str:
        return os.path.join(self.directory, f"{index}{RECORD_SUFFIX}")

    def _stored_indices(self) -> Set[int]:
        indices = set()
        for name in os.listdir(self.directory):
            stem, ext = os.path.splitext(name)
            # Only canonical names count: "01.json" or "².json" are foreign files.
            if ext == RECORD_SUFFIX and stem.isascii() and stem.isdigit() and stem == str(int(stem)):
                indices.add(int(stem))
        return indices

    def highest_stored_index(self) -> Optional[int]:
        """
        Greatest index i such that every record 0..i exists, or None if
        index 0 is missing.
        """
        indices = self._stored_indices()
        highest = -1
        while highest + 1 in indices:
            highest += 1
        return highest if highest >= 0 else None

    def next_index(self) -> int:
        highest = self.highest_stored_index()
        return 0 if highest is None else highest + 1

    def contains(self, index: int) -> bool:
        return os.path.exists(self._path(index))

    def put(self, index: int, record: Dict[str, Any]):
        """
        Write-once. Rewriting identical content is a no-op; different
        content for an existing index raises RecordConflict.
        """
        if index < 0:
            raise ValueError(f"Negative index: {index}")

        payload = json.dumps(record, indent=2, sort_keys=True) + "\n"
        path = self._path(index)

        if os.path.exists(path):
            if self.get(index) == json.loads(payload):
                return
            logger.error("record_conflict", index=index, path=path)
            raise RecordConflict("Refusing to overwrite stored record with different content", index=index)

        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{index}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, index: int) -> Dict[str, Any]:
        path = self._path(index)
        try:
            with open(path, "r") as f:
                return json.load(f)
        except FileNotFoundError:
            raise NotFound("No stored record", index=index) from None
        except json.JSONDecodeError as e:
            raise MalformedEvent(f"Stored record is not valid JSON: {e}", index=index) from e

    def iterate(self, from_index: int = 0) -> Iterator[Tuple[int, Dict[str, Any]]]:
        """
        Yields (index, record) ascending from `from_index`, stopping at the
        first index that has not been written. Never reports indices past
        a hole.
        """
        index = from_index
        while self.contains(index):
            yield index, self.get(index)
            index += 1

    def __len__(self) -> int:
        return self.next_index()
