"""
Environment-first configuration.

Settings are read once at startup and handed to create_app(); nothing else in
the package reads the environment.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import ConfigError

STORAGE_BACKENDS = ('sql', 'memory')
PRESET_AMOUNTS = (10, 25, 50, 100, 250, 500)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    if v is None:
        return default
    s = v.strip()
    return s if s else default


def _int(name: str, default: int) -> int:
    v = _env(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        raise ConfigError(f'{name} must be an integer, got {v!r}')


def _csv(name: str, default: str) -> Tuple[str, ...]:
    raw = _env(name, default) or ''
    return tuple(p.strip() for p in raw.split(',') if p.strip())


@dataclass(frozen=True)
class BankDetails:
    bank_name: str = 'Dummy Bank'
    account_holder: str = 'Dummy Account Holder'
    iban: Optional[str] = None
    bic: Optional[str] = None
    reference: str = 'Donation'


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: str
    stripe_webhook_secret: str
    stripe_publishable_key: str = ''
    stripe_currency: str = 'usd'
    stripe_timeout: int = 20
    storage_backend: str = 'sql'
    database_url: str = 'sqlite:///./church.db'
    cors_origins: Tuple[str, ...] = ('*',)
    admin_api_key: Optional[str] = None
    bank: BankDetails = field(default_factory=BankDetails)
    preset_amounts: Tuple[int, ...] = PRESET_AMOUNTS
    log_level: str = 'INFO'

    def __post_init__(self):
        if not self.stripe_secret_key:
            raise ConfigError('STRIPE_SECRET_KEY is required')
        if not self.stripe_webhook_secret:
            raise ConfigError('STRIPE_WEBHOOK_SECRET is required')
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ConfigError(f'STORAGE_BACKEND must be one of {", ".join(STORAGE_BACKENDS)}')

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            stripe_secret_key=_env('STRIPE_SECRET_KEY', ''),
            stripe_webhook_secret=_env('STRIPE_WEBHOOK_SECRET', ''),
            stripe_publishable_key=_env('STRIPE_PUBLISHABLE_KEY', ''),
            stripe_currency=(_env('STRIPE_CURRENCY', 'usd')).lower(),
            stripe_timeout=_int('STRIPE_TIMEOUT', 20),
            storage_backend=(_env('STORAGE_BACKEND', 'sql')).lower(),
            database_url=_env('DATABASE_URL', 'sqlite:///./church.db'),
            cors_origins=_csv('CORS_ORIGINS', '*'),
            admin_api_key=_env('ADMIN_API_KEY'),
            bank=BankDetails(
                bank_name=_env('BANK_NAME', 'Dummy Bank'),
                account_holder=_env('BANK_ACCOUNT_HOLDER', 'Dummy Account Holder'),
                iban=_env('BANK_IBAN'),
                bic=_env('BANK_BIC'),
                reference=_env('BANK_REFERENCE', 'Donation'),
            ),
            log_level=_env('LOG_LEVEL', 'INFO').upper(),
        )

    @property
    def card_enabled(self) -> bool:
        return bool(self.stripe_publishable_key)

    @property
    def stripe_mode(self) -> str:
        if self.stripe_secret_key.startswith(('sk_live_', 'rk_live_')):
            return 'live'
        if self.stripe_secret_key.startswith(('sk_test_', 'rk_test_')):
            return 'test'
        return 'unknown'


def configure_logging(level: str = 'INFO') -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
