import copy
import logging
import threading
from collections.abc import Iterable

from polyflow.exceptions import ResultStoreError
from polyflow.marshal import JSONValue

logger = logging.getLogger(__name__)


class ResultStore:
    """Outputs of the steps of one run, keyed by step name. Each entry is written once."""

    def __init__(self) -> None:
        self._results: dict[str, JSONValue] = {}
        self._lock = threading.Lock()

    def publish(self, name: str, value: JSONValue) -> None:
        with self._lock:
            if name in self._results:
                raise ResultStoreError(f"Result for step '{name}' was already published.")
            self._results[name] = value
        logger.debug(f"Published result of step '{name}'")

    def gather(self, names: Iterable[str]) -> dict[str, JSONValue]:
        """Deep copy of the published results among `names`; missing names are skipped."""
        with self._lock:
            return {
                name: copy.deepcopy(self._results[name])
                for name in names
                if name in self._results
            }

    def get(self, name: str, default: JSONValue = None) -> JSONValue:
        with self._lock:
            return copy.deepcopy(self._results.get(name, default))

    def snapshot(self) -> dict[str, JSONValue]:
        with self._lock:
            return copy.deepcopy(self._results)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._results

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
