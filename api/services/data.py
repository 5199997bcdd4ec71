from ledger.config import Settings, load_settings
from ledger.persistence import JsonLedgerStore
from ledger.store import Ledger
from labels.registry import LabelRegistry


def get_settings() -> Settings:
    return load_settings()


def load_ledger(settings: Settings | None = None) -> Ledger:
    settings = settings or get_settings()
    return JsonLedgerStore(settings.data_file).load()


def load_registry(settings: Settings | None = None) -> LabelRegistry:
    settings = settings or get_settings()
    return LabelRegistry.load(settings.labels_file, custodial_keyword=settings.custodial_keyword)


def assert_ledger_readable() -> None:
    """Fail startup on a corrupt snapshot instead of serving an empty ledger."""
    load_ledger()
