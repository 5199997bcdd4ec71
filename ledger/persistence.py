import json
import logging
import os
import tempfile
from pathlib import Path

from ledger.store import Ledger, LedgerFormatError

logger = logging.getLogger(__name__)


class JsonLedgerStore:
    """Whole-snapshot JSON persistence for a single writer.

    A missing file is an empty ledger. Anything unreadable raises
    LedgerFormatError instead of being replaced by an empty ledger.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Ledger:
        if not self.path.exists():
            logger.info("[ledger] no snapshot at %s, starting empty", self.path)
            return Ledger()
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise LedgerFormatError(f"cannot read ledger snapshot {self.path}: {e}") from e
        ledger = Ledger.restore(document)
        logger.info("[ledger] loaded %d addresses from %s", len(ledger), self.path)
        return ledger

    def save(self, ledger: Ledger) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(ledger.snapshot(), fh, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
