import json
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from solders.keypair import Keypair

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
KEYPAIR_ENV = "SOLANA_PRIVATE_KEY"


class ConfigError(ValueError):
    """Raised when the configuration file or the signing key is unusable."""


class PollMode(str, Enum):
    INTERVAL = "interval"
    BOUNDED = "bounded"


@dataclass(frozen=True)
class NetworkConfig:
    cluster: str = "mainnet-beta"
    rpc_endpoint: str = "https://api.mainnet-beta.solana.com"
    jupiter_base_url: str = "https://quote-api.jup.ag/v6"
    token_list_url: Optional[str] = None
    request_timeout: float = 5.0
    retries: int = 0


@dataclass(frozen=True)
class PairConfig:
    input_mint: str = USDC_MINT
    output_mint: str = USDC_MINT
    amount: Decimal = Decimal("5")
    slippage_pct: Decimal = Decimal("0")


@dataclass(frozen=True)
class StrategyConfig:
    # Base units of the input token the guaranteed output must clear on top of the input.
    fee_allowance: int = 0


@dataclass(frozen=True)
class PollConfig:
    mode: PollMode = PollMode.INTERVAL
    interval_seconds: float = 10.0
    iterations: int = 1000
    overlap: str = "skip"
    transient_retries: int = 1


@dataclass(frozen=True)
class PlatformFeeConfig:
    fee_bps: int = 0
    fee_account: Optional[str] = None


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: Optional[Path] = None


@dataclass(frozen=True)
class AgentConfig:
    network: NetworkConfig = field(default_factory=NetworkConfig)
    pair: PairConfig = field(default_factory=PairConfig)
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    platform_fee: PlatformFeeConfig = field(default_factory=PlatformFeeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _section(raw: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"section '{name}' must be a mapping")
    return value


def _decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigError(f"{name} is not a number: {value!r}") from None


def _integer(value: Any, name: str) -> int:
    number = _decimal(value, name)
    if not number.is_finite() or number != number.to_integral_value():
        raise ConfigError(f"{name} must be a whole number: {value!r}")
    return int(number)


def parse_config(raw: Optional[Mapping[str, Any]]) -> AgentConfig:
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError("configuration root must be a mapping")

    network = _section(raw, "network")
    pair = _section(raw, "pair")
    strategy = _section(raw, "strategy")
    poll = _section(raw, "poll")
    platform_fee = _section(raw, "platform_fee")
    log = _section(raw, "logging")

    try:
        mode = PollMode(poll.get("mode", PollMode.INTERVAL.value))
    except ValueError:
        raise ConfigError(f"unknown poll mode: {poll.get('mode')!r}") from None

    overlap = str(poll.get("overlap", "skip")).lower()
    if overlap not in ("skip", "queue"):
        raise ConfigError(f"unknown overlap policy: {overlap!r}")

    amount = _decimal(pair.get("amount", PairConfig.amount), "pair.amount")
    if amount <= 0:
        raise ConfigError("pair.amount must be positive")
    slippage = _decimal(pair.get("slippage_pct", PairConfig.slippage_pct), "pair.slippage_pct")
    if slippage < 0:
        raise ConfigError("pair.slippage_pct cannot be negative")

    try:
        config = AgentConfig(
            network=NetworkConfig(
                cluster=str(network.get("cluster", NetworkConfig.cluster)),
                rpc_endpoint=str(network.get("rpc_endpoint", NetworkConfig.rpc_endpoint)),
                jupiter_base_url=str(network.get("jupiter_base_url", NetworkConfig.jupiter_base_url)),
                token_list_url=network.get("token_list_url"),
                request_timeout=float(network.get("request_timeout", NetworkConfig.request_timeout)),
                retries=_integer(network.get("retries", NetworkConfig.retries), "network.retries"),
            ),
            pair=PairConfig(
                input_mint=str(pair.get("input_mint", USDC_MINT)),
                output_mint=str(pair.get("output_mint", USDC_MINT)),
                amount=amount,
                slippage_pct=slippage,
            ),
            strategy=StrategyConfig(fee_allowance=_integer(strategy.get("fee_allowance", 0), "strategy.fee_allowance")),
            poll=PollConfig(
                mode=mode,
                interval_seconds=float(poll.get("interval_seconds", PollConfig.interval_seconds)),
                iterations=_integer(poll.get("iterations", PollConfig.iterations), "poll.iterations"),
                overlap=overlap,
                transient_retries=_integer(
                    poll.get("transient_retries", PollConfig.transient_retries), "poll.transient_retries"
                ),
            ),
            platform_fee=PlatformFeeConfig(
                fee_bps=_integer(platform_fee.get("fee_bps", 0), "platform_fee.fee_bps"),
                fee_account=platform_fee.get("fee_account"),
            ),
            logging=LoggingConfig(
                level=str(log.get("level", "INFO")).upper(),
                file=Path(log["file"]) if log.get("file") else None,
            ),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid configuration value: {exc}") from exc

    if config.poll.interval_seconds < 0 or config.poll.iterations < 0:
        raise ConfigError("poll interval and iterations cannot be negative")
    if config.strategy.fee_allowance < 0:
        raise ConfigError("strategy.fee_allowance cannot be negative")
    return config


def load_config(config_path: Path) -> AgentConfig:
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f"cannot read {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse {config_path}: {exc}") from exc
    return parse_config(raw)


def load_keypair(env: Optional[Mapping[str, str]] = None) -> Keypair:
    """Load the signing key from ``SOLANA_PRIVATE_KEY``.

    Accepts either a base58 secret or the JSON byte array written by
    ``solana-keygen``.
    """
    env = os.environ if env is None else env
    raw = env.get(KEYPAIR_ENV)
    if not raw:
        raise ConfigError(f"{KEYPAIR_ENV} environment variable required")

    try:
        if raw.strip().startswith("["):
            return Keypair.from_bytes(bytes(json.loads(raw)))
        return Keypair.from_base58_string(raw.strip())
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"{KEYPAIR_ENV} is not a valid keypair") from exc
