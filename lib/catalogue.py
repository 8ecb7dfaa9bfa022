"""
Antimicrobial catalogue — reference list of drugs used in aquaculture.

Loads config/antimicrobials.yaml. Falls back to built-in defaults if the
config file is missing or unusable. Feeds the treatment form drop-down, default
withdrawal periods, drug-class fill-in and the banned-substance flag.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from lib import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Antimicrobial:
    name: str
    drug_class: str | None
    default_withdrawal_days: int | None
    banned: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "drug_class": self.drug_class,
            "default_withdrawal_days": self.default_withdrawal_days,
            "banned": self.banned,
        }


_DEFAULT_ENTRIES: list[dict] = [
    {"name": "Oxytetracycline", "drug_class": "Tetracycline", "default_withdrawal_days": 21},
    {"name": "Florfenicol", "drug_class": "Amphenicol", "default_withdrawal_days": 15},
    {"name": "Sulfadiazine-Trimethoprim", "drug_class": "Sulfonamide", "default_withdrawal_days": 28},
    {"name": "Erythromycin", "drug_class": "Macrolide", "default_withdrawal_days": 30},
    {"name": "Enrofloxacin", "drug_class": "Fluoroquinolone", "default_withdrawal_days": 30},
    {"name": "Chloramphenicol", "drug_class": "Amphenicol", "banned": True},
    {"name": "Nitrofurantoin", "drug_class": "Nitrofuran", "banned": True},
    {"name": "Furazolidone", "drug_class": "Nitrofuran", "banned": True},
    {"name": "Neomycin", "drug_class": "Aminoglycoside", "banned": True},
]


class Catalogue:
    """
    Case-insensitive antimicrobial lookup.

    Loads configuration from config/antimicrobials.yaml (or
    AMU_MONITOR_CATALOGUE). Falls back to defaults if the file is missing.
    """

    def __init__(self, config_path: Path | None = None):
        if config_path is None:
            config_path = config.catalogue_path()
        self._by_key: dict[str, Antimicrobial] = {}
        for entry in self._load_config(config_path):
            try:
                drug = _entry_to_drug(entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping catalogue entry %r in %s: %s", entry, config_path, e)
                continue
            self._by_key[drug.name.casefold()] = drug
        if not self._by_key:
            logger.warning("Catalogue %s has no usable entries, using defaults", config_path)
            for entry in _DEFAULT_ENTRIES:
                drug = _entry_to_drug(entry)
                self._by_key[drug.name.casefold()] = drug

    @staticmethod
    def _load_config(config_path: Path) -> list[dict]:
        if not config_path.exists():
            logger.info("Catalogue config not found at %s, using defaults", config_path)
            return _DEFAULT_ENTRIES
        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load catalogue %s: %s, using defaults", config_path, e)
            return _DEFAULT_ENTRIES
        if not isinstance(data, dict):
            logger.warning("Catalogue %s is not a mapping, using defaults", config_path)
            return _DEFAULT_ENTRIES
        entries = data.get("antimicrobials")
        if not isinstance(entries, list):
            logger.warning("Catalogue %s has no 'antimicrobials' list, using defaults", config_path)
            return _DEFAULT_ENTRIES
        return entries

    def get(self, name: str | None) -> Antimicrobial | None:
        if not name:
            return None
        return self._by_key.get(name.strip().casefold())

    def is_banned(self, name: str | None) -> bool:
        drug = self.get(name)
        return bool(drug and drug.banned)

    def all(self) -> list[Antimicrobial]:
        return sorted(self._by_key.values(), key=lambda d: d.name.casefold())

    def names(self) -> list[str]:
        return [d.name for d in self.all()]


def _entry_to_drug(entry: dict) -> Antimicrobial:
    """Raises KeyError, TypeError or ValueError for a malformed entry."""
    if not isinstance(entry, dict):
        raise TypeError("entry must be a mapping")
    raw_name = entry["name"]
    name = str(raw_name).strip() if raw_name is not None else ""
    if not name:
        raise ValueError("name must not be empty")
    days = entry.get("default_withdrawal_days")
    if days is not None:
        days = int(days)
        if days < 0:
            raise ValueError("default_withdrawal_days must be >= 0")
    return Antimicrobial(
        name=name,
        drug_class=entry.get("drug_class"),
        default_withdrawal_days=days,
        banned=bool(entry.get("banned", False)),
    )


_catalogue: Catalogue | None = None


def get_catalogue() -> Catalogue:
    """Get the shared catalogue instance."""
    global _catalogue  # noqa: PLW0603
    if _catalogue is None:
        _catalogue = Catalogue()
    return _catalogue


def reset_catalogue() -> None:
    """Drop the cached catalogue so the next call reloads config."""
    global _catalogue  # noqa: PLW0603
    _catalogue = None
