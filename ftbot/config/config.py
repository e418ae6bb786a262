"""
Configuration Module for friend.tech Sell Watcher
"""

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv
from eth_account import Account

load_dotenv()

FRIEND_TECH_CONTRACT_ADDRESS = "0xCF205808Ed36593aa40a44F10c7f7C2F67d4A4d4"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ChainConfig:
    node_provider_url: str
    private_key: str
    contract_address: str = FRIEND_TECH_CONTRACT_ADDRESS

    @classmethod
    def from_env(cls) -> "ChainConfig":
        return cls(
            node_provider_url=os.getenv("NODE_PROVIDER_URL", "https://mainnet.base.org"),
            private_key=os.getenv("PRIVATE_KEY", ""),
            contract_address=os.getenv("FRIEND_TECH_CONTRACT", FRIEND_TECH_CONTRACT_ADDRESS)
        )

    @property
    def wallet_address(self) -> str:
        """Address derived from the private key, empty if the key is missing or invalid."""
        if not self.private_key:
            return ""
        try:
            return Account.from_key(self.private_key).address
        except Exception:
            return ""


@dataclass
class TelegramConfig:
    bot_token: str = ""
    user_id: Optional[int] = None

    @classmethod
    def from_env(cls) -> "TelegramConfig":
        user_id = os.getenv("TELEGRAM_USER_ID", "").strip()
        return cls(
            bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
            user_id=int(user_id) if user_id.lstrip("-").isdigit() else None
        )

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token) and self.user_id is not None


@dataclass
class WatchConfig:
    poll_interval: float = 5.0
    block_batch_size: int = 500
    throttle_seconds: float = 30.0
    state_path: str = "./ftbot-state.json"
    dry_run: bool = False
    dev_mode: bool = False

    @classmethod
    def from_env(cls) -> "WatchConfig":
        return cls(
            poll_interval=float(os.getenv("POLL_INTERVAL", "5")),
            block_batch_size=int(os.getenv("BLOCK_BATCH_SIZE", "500")),
            throttle_seconds=float(os.getenv("THROTTLE_SECONDS", "30")),
            state_path=os.getenv("STATE_PATH", "./ftbot-state.json"),
            dry_run=_env_bool("DRY_RUN"),
            dev_mode=bool(os.getenv("DEBUG"))
        )


@dataclass
class Config:
    chain: ChainConfig
    telegram: TelegramConfig
    watch: WatchConfig
    log_level: str = "INFO"

    @classmethod
    def load(cls, env_path: str = ".env") -> "Config":
        if os.path.exists(env_path):
            load_dotenv(env_path)

        return cls(
            chain=ChainConfig.from_env(),
            telegram=TelegramConfig.from_env(),
            watch=WatchConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper()
        )

    def validate(self) -> tuple[bool, list[str]]:
        errors = []
        if not self.chain.node_provider_url:
            errors.append("NODE_PROVIDER_URL is required")
        if not self.chain.private_key:
            errors.append("PRIVATE_KEY is required")
        elif not self.chain.wallet_address:
            errors.append("PRIVATE_KEY is not a valid private key")
        if self.telegram.bot_token and self.telegram.user_id is None:
            errors.append("TELEGRAM_USER_ID is required when TELEGRAM_BOT_TOKEN is set")
        if self.watch.poll_interval <= 0:
            errors.append("POLL_INTERVAL must be positive")
        if self.watch.block_batch_size <= 0:
            errors.append("BLOCK_BATCH_SIZE must be positive")
        return len(errors) == 0, errors


if __name__ == "__main__":
    print("Configuration Test")
    print("=" * 50)
    config = Config.load()
    print(f"Wallet: {config.chain.wallet_address or '(not set)'}")
    print(f"Provider: {config.chain.node_provider_url}")
    print(f"Telegram: {'enabled' if config.telegram.enabled else 'disabled'}")
    print(f"Dry run: {config.watch.dry_run}")
    valid, errors = config.validate()
    print(f"Validation: {'PASSED' if valid else 'FAILED'}")
    if errors:
        for e in errors:
            print(f"  Error: {e}")
