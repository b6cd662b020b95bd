"""Wordlist generation and caching for Warden"""

import logging
import os
import random
import re
from typing import Dict, List, Optional, Union

from warden.config import Settings, settings
from warden.errors import GenerationError
from warden.models import SizeClass, WordlistTier
from warden.payloads import (
    GENERATOR_SPECIALS,
    GENERATOR_SUFFIXES,
    GENERATOR_WORDS,
    STATIC_LISTS,
    get_seeds,
)

logger = logging.getLogger(__name__)


class WordlistGenerator:
    """
    Produces candidate wordlists on demand and caches them on disk.

    A cached file is never overwritten: once `passwords_medium.txt` exists it
    is what every later run uses, so hand-tuned lists survive. Delete the file
    to force regeneration.
    """

    # Generated passwords appended to the seed list per size class
    GENERATED_COUNTS = {
        SizeClass.SMALL: 20,
        SizeClass.MEDIUM: 60,
        SizeClass.LARGE: 200,
    }

    # Only password lists get generated entries
    GENERATED_KINDS = {"passwords"}

    def __init__(self, config: Optional[Settings] = None, rng: Optional[random.Random] = None):
        self.config = config or settings
        self.directory = self.config.wordlist_dir
        self.generate = self.config.generate_passwords
        if rng is None:
            rng = random.Random(self.config.wordlist_seed or None)
        self.rng = rng

    def path_for(self, kind: str, size_class: Union[SizeClass, str]) -> str:
        size = SizeClass(size_class)
        return os.path.join(self.directory, f"{kind}_{size.value}.txt")

    def ensure(self, size_class: Union[SizeClass, str], kind: str = "passwords") -> WordlistTier:
        """Load the cached tier or build and cache it"""
        size = SizeClass(size_class)
        path = self.path_for(kind, size)

        if os.path.exists(path):
            entries = self._load(path)
            if entries:
                logger.debug(f"Using cached wordlist {path} ({len(entries)} entries)")
                return WordlistTier(kind=kind, size_class=size, entries=entries, path=path)
            logger.warning(f"Cached wordlist {path} is empty, regenerating")

        entries = get_seeds(kind, size.value)
        if self.generate and kind in self.GENERATED_KINDS:
            entries.extend(self._generate(self.GENERATED_COUNTS[size], exclude=set(entries)))

        entries = list(dict.fromkeys(e for e in entries if e))
        if not entries:
            raise GenerationError(f"No seed data or generator available for {kind}/{size.value}")

        self._write(path, entries)
        logger.info(f"Created wordlist {path} ({len(entries)} entries)")
        return WordlistTier(kind=kind, size_class=size, entries=entries, path=path)

    def static(self, name: str) -> WordlistTier:
        """Materialize a fixed list (payloads, application names, queries)"""
        if name not in STATIC_LISTS:
            raise GenerationError(f"Unknown static list: {name}")

        path = os.path.join(self.directory, f"{name}.txt")
        if os.path.exists(path):
            entries = self._load(path)
        else:
            entries = list(STATIC_LISTS[name])
            self._write(path, entries)
            logger.info(f"Created {path} ({len(entries)} entries)")

        if not entries:
            raise GenerationError(f"Static list {path} is empty")

        # size_class is not meaningful for static lists
        return WordlistTier(kind=name, size_class=SizeClass.SMALL, entries=entries, path=path)

    def single_user(self, username: str) -> str:
        """Path of a one-entry userdb file for sweeps against a known login"""
        slug = re.sub(r"[^A-Za-z0-9_.-]+", "_", username) or "user"
        path = os.path.join(self.directory, f"user_{slug}.txt")
        if not os.path.exists(path):
            self._write(path, [username])
        return path

    def ensure_all(self) -> Dict[str, WordlistTier]:
        """Prepare every list the playbooks use"""
        tiers = {}
        for size in SizeClass:
            for kind in ("passwords", "usernames"):
                tier = self.ensure(size, kind)
                tiers[f"{kind}_{size.value}"] = tier
        tiers["enum_passwords_small"] = self.ensure(SizeClass.SMALL, "enum_passwords")
        for name in STATIC_LISTS:
            tiers[name] = self.static(name)
        return tiers

    def _generate(self, count: int, exclude: set) -> List[str]:
        """Generate `count` unique entries: word + numeric suffix + optional special"""
        generated: List[str] = []
        seen = set(exclude)
        available = [p for p in self._all_patterns() if p not in seen]
        count = min(count, len(available))

        attempts = 0
        while len(generated) < count and attempts < count * 50:
            attempts += 1
            word = self.rng.choice(GENERATOR_WORDS)
            suffix = self.rng.choice(GENERATOR_SUFFIXES)
            special = self.rng.choice(GENERATOR_SPECIALS) if self.rng.random() < 0.5 else ""
            candidate = f"{word}{suffix}{special}"
            if candidate in seen:
                continue
            seen.add(candidate)
            generated.append(candidate)

        # Unlucky draws: top up in pattern order so the length stays fixed
        for candidate in available:
            if len(generated) >= count:
                break
            if candidate not in seen:
                seen.add(candidate)
                generated.append(candidate)

        return generated

    @staticmethod
    def _all_patterns() -> List[str]:
        patterns = []
        for word in GENERATOR_WORDS:
            for suffix in GENERATOR_SUFFIXES:
                patterns.append(f"{word}{suffix}")
                patterns.extend(f"{word}{suffix}{special}" for special in GENERATOR_SPECIALS)
        return list(dict.fromkeys(patterns))

    @staticmethod
    def _load(path: str) -> List[str]:
        try:
            with open(path, encoding="utf-8") as f:
                return [line.rstrip("\n") for line in f if line.strip()]
        except OSError as e:
            raise GenerationError(f"Cannot read wordlist {path}: {e}")

    def _write(self, path: str, entries: List[str]):
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write("\n".join(entries) + "\n")
        except OSError as e:
            raise GenerationError(f"Cannot write wordlist {path}: {e}")
