import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

DEFAULT_TOKEN_ADDRESS = "0x970a341b4e311a5c7248dc9c3d8d4f35fedfa73e"
DEFAULT_TOTAL_SUPPLY = 5_000_000_000 * 10**18


@dataclass(frozen=True)
class Settings:
    token_address: str = DEFAULT_TOKEN_ADDRESS
    start_block: int = 23970798
    rpc_urls: list[str] = field(default_factory=lambda: ["https://ethereum-rpc.publicnode.com"])
    data_file: str = "data/transfers.json"
    labels_file: str = "labels.json"
    batch_size: int = 1000
    scan_throttle_s: float = 0.1
    scan_interval_s: float = 60.0
    scan_retry_delay_s: float = 60.0
    custodial_keyword: str = "helios"
    trace_max_depth: int = 50
    token_decimals: int = 18
    token_price_usd: str = "0.02"
    total_supply: int = DEFAULT_TOTAL_SUPPLY


def load_settings() -> Settings:
    load_dotenv()

    primary = os.getenv("RPC_URL", "https://ethereum-rpc.publicnode.com")
    fallback = os.getenv("RPC_FALLBACKS", "")
    rpc_urls = [primary] + [u.strip() for u in fallback.split(",") if u.strip()]

    return Settings(
        token_address=os.getenv("TOKEN_ADDRESS", DEFAULT_TOKEN_ADDRESS).lower(),
        start_block=int(os.getenv("START_BLOCK", "23970798")),
        rpc_urls=rpc_urls,
        data_file=os.getenv("DATA_FILE", "data/transfers.json"),
        labels_file=os.getenv("LABELS_FILE", "labels.json"),
        batch_size=max(1, int(os.getenv("SCAN_BATCH_SIZE", "1000"))),
        scan_throttle_s=float(os.getenv("SCAN_THROTTLE_S", "0.1")),
        scan_interval_s=float(os.getenv("SCAN_INTERVAL_S", "60")),
        scan_retry_delay_s=float(os.getenv("SCAN_RETRY_DELAY_S", "60")),
        custodial_keyword=os.getenv("CUSTODIAL_KEYWORD", "helios"),
        trace_max_depth=int(os.getenv("TRACE_MAX_DEPTH", "50")),
        token_decimals=int(os.getenv("TOKEN_DECIMALS", "18")),
        token_price_usd=os.getenv("TOKEN_PRICE_USD", "0.02"),
        total_supply=int(os.getenv("TOTAL_SUPPLY", str(DEFAULT_TOTAL_SUPPLY))),
    )
