import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CUSTODIAL_KEYWORD = "helios"
DEFAULT_IGNORED_NAMES = frozenset({"Token Contract"})


class LabelFormatError(ValueError):
    pass


class LabelEntry(BaseModel):
    """Object form of a labels-file value; a bare string is shorthand for ``name``."""

    model_config = ConfigDict(extra="ignore")

    name: StrictStr
    custodial: Optional[StrictBool] = None


@dataclass(frozen=True)
class Label:
    name: str
    custodial: bool = False


class LabelRegistry:
    """Address -> Label lookup. Custodial labels are tracing boundaries."""

    def __init__(self, labels: dict[str, Label] | None = None):
        self._labels = {k.lower(): v for k, v in (labels or {}).items()}

    def __len__(self) -> int:
        return len(self._labels)

    def get(self, address: str) -> Label | None:
        return self._labels.get((address or "").lower())

    def is_custodial(self, address: str) -> bool:
        label = self.get(address)
        return bool(label and label.custodial)

    def items(self) -> Iterator[tuple[str, Label]]:
        return iter(self._labels.items())

    def names(self) -> dict[str, str]:
        return {a: lb.name for a, lb in self._labels.items()}

    @classmethod
    def from_mapping(
        cls,
        raw: Any,
        custodial_keyword: str = DEFAULT_CUSTODIAL_KEYWORD,
        ignored_names=DEFAULT_IGNORED_NAMES,
    ) -> "LabelRegistry":
        if not isinstance(raw, dict):
            raise LabelFormatError("labels document must be a JSON object")
        keyword = (custodial_keyword or "").lower()
        labels: dict[str, Label] = {}
        for key, value in raw.items():
            if not isinstance(key, str) or key.startswith("_"):
                continue
            if isinstance(value, str):
                entry = LabelEntry(name=value)
            elif isinstance(value, dict):
                try:
                    entry = LabelEntry.model_validate(value)
                except ValidationError as e:
                    raise LabelFormatError(f"{key}: invalid label entry: {e}") from e
            else:
                continue
            name, custodial = entry.name.strip(), entry.custodial
            if not name or name in ignored_names:
                continue
            if custodial is None:
                custodial = bool(keyword) and keyword in name.lower()
            labels[key.lower()] = Label(name=name, custodial=custodial)
        return cls(labels)

    @classmethod
    def load(
        cls,
        path: str | Path,
        custodial_keyword: str = DEFAULT_CUSTODIAL_KEYWORD,
        ignored_names=DEFAULT_IGNORED_NAMES,
    ) -> "LabelRegistry":
        p = Path(path)
        if not p.exists():
            logger.warning("[labels] %s not found, no labels loaded", p)
            return cls()
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise LabelFormatError(f"cannot read labels file {p}: {e}") from e
        registry = cls.from_mapping(raw, custodial_keyword, ignored_names)
        logger.info("[labels] %d labels loaded from %s", len(registry), p)
        return registry
