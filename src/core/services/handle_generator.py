"""Human-readable account name generation.

Names are `<prefix><words/digits>.<domain>`, built from fixed word lists and one
of a fixed set of composition patterns. Uniqueness is not attempted here:
collisions are handled by the availability loop in `handle_resolver`.
"""

from __future__ import annotations

import random
import time
from typing import Callable, Sequence

ADJECTIVES: tuple[str, ...] = (
    "cool", "smart", "fast", "bright", "happy", "lucky", "brave", "wise", "kind", "bold",
    "quick", "sharp", "calm", "wild", "free", "pure", "true", "real", "deep", "high",
    "low", "big", "small", "new", "old", "young", "fresh", "clean", "clear", "soft",
    "hard", "warm", "cold", "hot", "sweet", "sour", "bitter", "spicy", "smooth", "rough",
    "quiet", "loud", "dark", "light", "heavy", "strong", "weak", "rich", "poor",
    "epic", "awesome", "amazing", "incredible", "fantastic", "wonderful", "perfect", "super", "mega", "ultra",
    "crypto", "nft", "web3", "defi", "blockchain", "digital", "virtual", "cyber", "tech", "future",
    "alpha", "beta", "gamma", "delta", "omega", "sigma", "zeta", "theta", "lambda", "phi",
)

NOUNS: tuple[str, ...] = (
    "cat", "dog", "bird", "fish", "lion", "tiger", "bear", "wolf", "fox", "deer",
    "rabbit", "mouse", "rat", "snake", "frog", "turtle", "crab", "shark", "whale", "dolphin",
    "eagle", "hawk", "owl", "crow", "duck", "goose", "swan", "penguin", "parrot", "peacock",
    "star", "moon", "sun", "cloud", "rain", "snow", "wind", "storm", "thunder", "lightning",
    "river", "lake", "ocean", "mountain", "forest", "desert", "island", "beach", "cave", "cliff",
    "tree", "flower", "grass", "rock", "stone", "gem", "crystal", "diamond", "gold", "silver",
    "fire", "water", "earth", "air", "ice", "steam", "smoke", "dust", "sand", "mud",
    "king", "queen", "prince", "princess", "knight", "wizard", "witch", "dragon", "unicorn", "phoenix",
    "hero", "warrior", "hunter", "archer", "sword", "shield", "armor", "helmet", "crown", "throne",
    "book", "pen", "paper", "ink", "paint", "brush", "canvas", "art", "music", "song",
    "dream", "hope", "love", "joy", "peace", "freedom", "truth", "justice", "honor", "glory",
    "ape", "dude", "guy", "bro", "sis", "kid", "boy", "girl", "man", "woman",
    "hacker", "coder", "dev", "pro", "guru", "master", "boss", "chief", "leader", "captain",
    "ninja", "samurai", "viking", "pirate", "spy", "agent", "detective", "sheriff", "ranger", "scout",
    "gamer", "player", "streamer", "youtuber", "influencer", "creator", "artist", "designer", "builder", "maker",
    "trader", "investor", "hodler", "miner", "validator", "node", "wallet", "token", "coin",
    "planet", "galaxy", "universe", "cosmos", "nebula", "comet", "asteroid", "meteor", "blackhole", "wormhole",
    "robot", "android", "cyborg", "ai", "bot", "drone", "satellite", "spaceship", "rocket", "ufo",
    "ghost", "vampire", "zombie", "alien", "monster", "beast", "creature", "spirit", "soul", "mind",
)

SUFFIXES: tuple[str, ...] = (
    "er", "or", "ist", "ian", "ly", "ful", "less", "able", "ible", "ous",
    "ious", "eous", "al", "ial", "ic", "ical", "ive", "ative", "itive", "ent",
    "ant", "ing", "ed", "en", "ish", "like", "y", "ey", "ie",
)

DIGITS: tuple[str, ...] = tuple("0123456789")
FILLERS: tuple[str, ...] = ("x", "z", "q", "v", "w")


class HandleGenerator:
    """Random `<prefix>...<.domain>` names.

    `rng` and `clock` are injectable so tests can make output deterministic.
    """

    def __init__(
        self,
        *,
        domain: str = "near",
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._domain = domain
        self._rng = rng or random.Random()
        self._clock = clock
        self._patterns: Sequence[Callable[[], str]] = (
            lambda: self._adj() + self._noun(),
            lambda: self._noun() + self._adj(),
            lambda: self._adj() + self._noun() + self._suffix(),
            lambda: self._noun() + self._digits(2),
            lambda: self._adj() + self._digits(2),
            lambda: self._noun() + self._noun(),
            lambda: self._adj() + self._adj(),
            lambda: self._noun() + self._filler() + self._digits(1),
            lambda: self._adj() + self._filler() + self._digits(1),
            lambda: self._noun() + self._suffix() + self._digits(1),
            lambda: self._adj() + self._suffix() + self._digits(1),
            lambda: self._digits(2) + self._noun(),
            lambda: self._digits(2) + self._adj(),
            lambda: self._filler() + self._noun() + self._digits(1),
            lambda: self._filler() + self._adj() + self._digits(1),
            self._timestamp,
        )

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def pattern_count(self) -> int:
        return len(self._patterns)

    def generate(self, prefix: str) -> str:
        pattern = self._rng.choice(self._patterns)
        return f"{prefix}{pattern()}.{self._domain}"

    def _adj(self) -> str:
        return self._rng.choice(ADJECTIVES)

    def _noun(self) -> str:
        return self._rng.choice(NOUNS)

    def _suffix(self) -> str:
        return self._rng.choice(SUFFIXES)

    def _filler(self) -> str:
        return self._rng.choice(FILLERS)

    def _digits(self, n: int) -> str:
        return "".join(self._rng.choice(DIGITS) for _ in range(n))

    def _timestamp(self) -> str:
        # Last four digits of the current epoch milliseconds.
        return str(int(self._clock() * 1000))[-4:]
