# santabot/services/solver.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from santabot.config.settings import DEFAULT_DRAW_MAX_ATTEMPTS, DEFAULT_HISTORY_WEIGHTS, Settings
from santabot.errors import NoValidAssignment

log = logging.getLogger(__name__)

# restrictions[i][k] = roster index participant i gave to k events ago (None = unknown)
Restrictions = list[list[Optional[int]]]


@dataclass(frozen=True, slots=True)
class SolverConfig:
    # weights[k]: chance a repeat of the pairing from k events ago is let through.
    # 0.0 = never repeat.
    weights: tuple[float, ...] = DEFAULT_HISTORY_WEIGHTS
    max_attempts: int = DEFAULT_DRAW_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        for w in self.weights:
            if not 0.0 <= w <= 1.0:
                raise ValueError(f"History weights must be within [0, 1], got {w!r}")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @property
    def window(self) -> int:
        return len(self.weights)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SolverConfig":
        return cls(weights=settings.history_weights, max_attempts=settings.draw_max_attempts)


def build_restrictions(
    roster: Sequence[int],
    links: Mapping[tuple[int, int], int],
    window: int,
) -> Restrictions:
    """
    Translate {(user_id, k): giftee_id} into roster indices.
    History involving people not in this year's roster is dropped.
    """
    index = {uid: i for i, uid in enumerate(roster)}
    table: Restrictions = [[None] * window for _ in roster]

    for (user_id, k), giftee_id in links.items():
        if not 0 <= k < window:
            continue
        i = index.get(user_id)
        j = index.get(giftee_id)
        if i is None or j is None:
            continue
        table[i][k] = j
    return table


def is_acceptable(
    perm: Sequence[int],
    restrictions: Restrictions,
    weights: Sequence[float],
    rng: random.Random,
) -> bool:
    """
    Derangement check plus history rule.

    Each repeated pairing gets its own coin flip: with weight w it survives
    with probability w, so one candidate may pass one repeat and fail another.
    """
    for i, target in enumerate(perm):
        if target == i:
            return False
        for k, previous in enumerate(restrictions[i]):
            if previous is None or previous != target:
                continue
            w = weights[k]
            if w == 0.0:
                return False
            if rng.random() > w:
                return False
    return True


def _allowed_targets(n: int, restrictions: Restrictions, weights: Sequence[float], *, avoid_soft: bool) -> list[set[int]]:
    allowed: list[set[int]] = []
    for i in range(n):
        banned = {i}
        for k, previous in enumerate(restrictions[i]):
            if previous is None:
                continue
            if weights[k] == 0.0 or avoid_soft:
                banned.add(previous)
        allowed.append(set(range(n)) - banned)
    return allowed


def _augment(root: int, candidates: list[list[int]], owner: list[Optional[int]]) -> bool:
    """
    Searches for an augmenting path from `root` with an explicit stack,
    so roster size is not bounded by the recursion limit.
    """
    seen: set[int] = set()
    path: list[tuple[int, int]] = []  # (giver, receiver it reaches for), one per stack link
    stack = [(root, iter(candidates[root]))]

    while stack:
        giver, it = stack[-1]
        for r in it:
            if r in seen:
                continue
            seen.add(r)
            holder = owner[r]
            if holder is None:
                owner[r] = giver
                for g, taken in path:
                    owner[taken] = g
                return True
            path.append((giver, r))
            stack.append((holder, iter(candidates[holder])))
            break
        else:
            stack.pop()
            if path:
                path.pop()

    return False


def _perfect_matching(allowed: list[set[int]], rng: Optional[random.Random] = None) -> Optional[list[int]]:
    """
    Augmenting-path bipartite matching (givers -> receivers).
    Returns perm with perm[giver] = receiver, or None if no perfect matching exists.
    With an rng, givers and candidate lists are shuffled so the result varies.
    """
    n = len(allowed)
    owner: list[Optional[int]] = [None] * n  # receiver -> giver

    candidates = [sorted(a) for a in allowed]
    order = list(range(n))
    if rng is not None:
        rng.shuffle(order)
        for c in candidates:
            rng.shuffle(c)

    for giver in order:
        if not _augment(giver, candidates, owner):
            return None

    perm = [0] * n
    for receiver, giver in enumerate(owner):
        perm[giver] = receiver  # type: ignore[index]
    return perm


def solve_assignment(
    n: int,
    restrictions: Restrictions,
    config: SolverConfig,
    rng: Optional[random.Random] = None,
) -> list[int]:
    """
    Returns perm where perm[i] is the roster index participant i gives to.

    1. n < 2, or no derangement avoiding the hard (weight 0) repeats -> NoValidAssignment
    2. rejection sampling of uniform shuffles, at most config.max_attempts
    3. fallback: constructive matching, avoiding every remembered pairing when possible
    """
    rng = rng or random.Random()

    if n < 2:
        raise NoValidAssignment(f"Need at least 2 participants to draw names, have {n}")

    hard_allowed = _allowed_targets(n, restrictions, config.weights, avoid_soft=False)
    if any(not a for a in hard_allowed) or _perfect_matching(hard_allowed) is None:
        raise NoValidAssignment(
            "No valid assignment exists: recent pairings rule out every possible draw"
        )

    perm = list(range(n))
    for attempt in range(1, config.max_attempts + 1):
        rng.shuffle(perm)
        if is_acceptable(perm, restrictions, config.weights, rng):
            log.debug("Accepted permutation after %d attempt(s)", attempt)
            return list(perm)

    log.warning("Sampler gave up after %d attempts, building a matching instead", config.max_attempts)

    strict = _perfect_matching(
        _allowed_targets(n, restrictions, config.weights, avoid_soft=True), rng
    )
    if strict is not None:
        return strict

    fallback = _perfect_matching(hard_allowed, rng)
    if fallback is None:  # feasibility was checked above
        raise NoValidAssignment("No valid assignment exists")
    return fallback


def assign(
    roster: Sequence[int],
    links: Mapping[tuple[int, int], int],
    config: SolverConfig,
    rng: Optional[random.Random] = None,
) -> list[tuple[int, int]]:
    """Roster ids in, (participant, giftee) id pairs out."""
    restrictions = build_restrictions(roster, links, config.window)
    perm = solve_assignment(len(roster), restrictions, config, rng)
    return [(roster[i], roster[j]) for i, j in enumerate(perm)]
