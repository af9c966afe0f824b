"""
Service: dice.py
Rôle:
- Évaluer les formules de dés restreintes (`2d6+1`, `1d20+3`, `4d8+4`, `10`).
- Tirages de création de personnage (attributs, or) et d'initiative.

Formules:
- Termes séparés par `+` (un terme constant ou un dé peut aussi être précédé de `-`).
- Terme = entier constant, ou `<n>d<faces>` (n omis → 1).
- Formule invalide → total de repli `FALLBACK_TOTAL` (= 1), jamais d'exception.

Méthodes d'attributs:
- CLASSIC / ADVENTURER : 3d6 additionnés (ADVENTURER autorise ensuite la réaffectation des totaux).
- HEROIC : 4d6, on retire le dé le plus faible.

Tests:
- Toutes les fonctions acceptent un `rng` (random.Random) pour des tirages reproductibles.
"""
from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from app.models.character import Attribute
from app.models.enums import RollingMethod

logger = logging.getLogger(__name__)

FALLBACK_TOTAL = 1
MAX_DICE_PER_TERM = 100
QUICK_DICE = (4, 6, 8, 10, 12, 20)

_TERM_RE = re.compile(r"^(?P<sign>[+-]?)(?:(?P<count>\d*)d(?P<sides>\d+)|(?P<const>\d+))$")
_SPLIT_RE = re.compile(r"(?=[+-])")


class FormulaError(ValueError):
    """Formule de dés non reconnue (interne : jamais propagée par `roll_formula`)."""


@dataclass(frozen=True)
class DiceTerm:
    sign: int
    count: int = 0
    sides: int = 0
    constant: int = 0

    @property
    def is_die(self) -> bool:
        return self.sides > 0


@dataclass(frozen=True)
class DiceRoll:
    formula: str
    total: int
    results: List[int] = field(default_factory=list)
    valid: bool = True

    def as_roll_data(self) -> dict:
        return {"formula": self.formula, "results": list(self.results), "total": self.total}


def _rng(rng: Optional[random.Random]):
    return rng if rng is not None else random


def parse_formula(formula: str) -> List[DiceTerm]:
    """Découpe une formule en termes signés ; lève `FormulaError` si invalide."""
    text = (formula or "").replace(" ", "").lower()
    if not text:
        raise FormulaError("empty formula")
    terms: List[DiceTerm] = []
    for chunk in _SPLIT_RE.split(text):
        if not chunk:
            continue
        match = _TERM_RE.match(chunk)
        if not match:
            raise FormulaError(f"invalid term: {chunk!r}")
        sign = -1 if match.group("sign") == "-" else 1
        if match.group("const") is not None:
            terms.append(DiceTerm(sign=sign, constant=int(match.group("const"))))
            continue
        count = int(match.group("count") or 1)
        sides = int(match.group("sides"))
        if sides < 1 or count > MAX_DICE_PER_TERM:
            raise FormulaError(f"invalid die: {chunk!r}")
        terms.append(DiceTerm(sign=sign, count=count, sides=sides))
    if not terms:
        raise FormulaError("no terms")
    return terms


def roll_die(sides: int, rng: Optional[random.Random] = None) -> int:
    return _rng(rng).randint(1, sides)


def roll_dice(count: int, sides: int, rng: Optional[random.Random] = None) -> List[int]:
    return [roll_die(sides, rng) for _ in range(count)]


def roll_formula(formula: str, rng: Optional[random.Random] = None) -> DiceRoll:
    """
    Évalue une formule : somme des dés tirés + constantes.
    En cas de formule invalide, renvoie un `DiceRoll(total=FALLBACK_TOTAL, valid=False)`.
    """
    try:
        terms = parse_formula(formula)
    except FormulaError:
        logger.warning("Malformed dice formula, using fallback", extra={"formula": formula})
        return DiceRoll(formula=formula or "", total=FALLBACK_TOTAL, valid=False)

    total = 0
    results: List[int] = []
    for term in terms:
        if term.is_die:
            rolled = roll_dice(term.count, term.sides, rng)
            results.extend(rolled)
            total += term.sign * sum(rolled)
        else:
            total += term.sign * term.constant
    return DiceRoll(formula=formula, total=total, results=results)


def roll_total(formula: str, rng: Optional[random.Random] = None) -> int:
    return roll_formula(formula, rng).total


def quick_formula(sides: int, modifier: int = 0) -> str:
    """`1d20`, `1d6+2`, `1d8-1` (format du lanceur rapide)."""
    if modifier > 0:
        return f"1d{sides}+{modifier}"
    if modifier < 0:
        return f"1d{sides}{modifier}"
    return f"1d{sides}"


def roll_quick(sides: int, modifier: int = 0, rng: Optional[random.Random] = None) -> DiceRoll:
    """Jet rapide d'un seul dé + modificateur (le résultat brut du dé reste dans `results`)."""
    if sides < 1:
        raise ValueError("sides must be >= 1")
    result = roll_die(sides, rng)
    return DiceRoll(formula=quick_formula(sides, modifier), total=result + modifier, results=[result])


# ---------------------------------------------------------------------------
# Création de personnage
# ---------------------------------------------------------------------------
def heroic_total(dice: Sequence[int]) -> int:
    """4d6 : somme des trois meilleurs dés (un seul dé le plus faible est retiré)."""
    ordered = sorted(dice)
    return sum(ordered[1:])


def roll_attribute_value(method: RollingMethod, rng: Optional[random.Random] = None) -> int:
    if method == RollingMethod.HEROIC:
        return heroic_total(roll_dice(4, 6, rng))
    return sum(roll_dice(3, 6, rng))


def roll_attributes(
    codes: Iterable[str],
    method: RollingMethod = RollingMethod.CLASSIC,
    rng: Optional[random.Random] = None,
) -> List[Attribute]:
    """Tire une valeur par attribut, dans l'ordre fixé par le système de règles."""
    return [Attribute(code=code, value=roll_attribute_value(method, rng)) for code in codes]


def reassign_scores(
    attributes: Sequence[Attribute],
    values: Sequence[int],
    method: RollingMethod,
) -> List[Attribute]:
    """
    Méthode ADVENTURER : réaffecte les totaux tirés aux emplacements d'attributs.
    `values` doit être une permutation des valeurs déjà tirées.
    """
    if method != RollingMethod.ADVENTURER:
        raise ValueError("reassignment is only allowed with the ADVENTURER method")
    if len(values) != len(attributes) or sorted(values) != sorted(a.value for a in attributes):
        raise ValueError("values must be a permutation of the rolled totals")
    return [Attribute(code=a.code, name=a.name, value=v) for a, v in zip(attributes, values)]


def roll_gold(rng: Optional[random.Random] = None) -> int:
    """Or de départ (Old Dragon 2e) : 3d6 × 10."""
    return sum(roll_dice(3, 6, rng)) * 10


def roll_initiative(modifier: int = 0, rng: Optional[random.Random] = None) -> int:
    """Initiative : 1d20 + modificateur (DES pour un joueur, fixe pour un monstre)."""
    return roll_die(20, rng) + modifier
