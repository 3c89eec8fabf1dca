# rentradar/domain/locations.py
from __future__ import annotations

from typing import Iterable, Protocol

from .parsing import fold
from .types import ResolvedLocation


class LocationResolver(Protocol):
    def resolve(self, free_text: str) -> ResolvedLocation:
        ...


# Third-party sites label the same area differently: a listing in "Cedritos" is what a
# user asking for "Usaquén" wants. Keys and values are compared folded.
NEIGHBORHOOD_ALIASES: dict[str, tuple[str, ...]] = {
    "usaquen": ("cedritos", "santa barbara", "country club", "santa bibiana", "la carolina", "san patricio", "unicentro"),
    "chapinero": ("zona rosa", "chico", "rosales", "quinta camacho", "el retiro", "la cabrera", "el nogal", "virrey", "zona g"),
    "suba": ("niza", "colina campestre", "mazuren", "pontevedra", "prado veraniego", "san jose de bavaria"),
    "teusaquillo": ("galerias", "palermo", "la soledad", "park way", "armenia"),
    "engativa": ("normandia", "modelia", "el dorado", "la soledad norte"),
    "fontibon": ("hayuelos", "salitre", "ciudad salitre", "modelia"),
    "kennedy": ("castilla", "americas", "timiza", "patio bonito"),
    "barrios unidos": ("polo club", "doce de octubre", "los alcazares", "san fernando"),
    "el poblado": ("poblado", "provenza", "manila", "castropol", "la frontera", "los balsos"),
    "laureles": ("estadio", "conquistadores", "la castellana", "suramericana"),
    "envigado": ("la magnolia", "zuniga", "el esmeraldal"),
}

# Known high-demand areas; a small scoring bonus, never a filter
PREMIUM_NEIGHBORHOODS: tuple[str, ...] = (
    "rosales",
    "zona rosa",
    "chico",
    "la cabrera",
    "el nogal",
    "virrey",
    "usaquen",
    "cedritos",
    "santa barbara",
    "el poblado",
    "provenza",
)

# single characters a UI may send to mean "anywhere"
_WILDCARDS = {"*", ".", "?", "+", "!", "@", "#", "$", "%", "^", "&"}


def is_wildcard(term: str | None) -> bool:
    if term is None:
        return True
    t = term.strip()
    if len(t) <= 1 or t in _WILDCARDS:
        return True
    return all(not ch.isalnum() for ch in t)


def expand_aliases(term: str) -> set[str]:
    """
    Folded term plus its synonyms. Works both ways: "Cedritos" expands to its parent
    "usaquen" and the parent's other children are NOT pulled in.
    """
    t = fold(term)
    out = {t}
    if t in NEIGHBORHOOD_ALIASES:
        out.update(NEIGHBORHOOD_ALIASES[t])
    for parent, children in NEIGHBORHOOD_ALIASES.items():
        if t in children:
            out.add(parent)
    return {x for x in out if x}


def matches_any(terms: Iterable[str], haystacks: Iterable[str | None]) -> bool:
    """
    Flexible neighborhood match: substring containment of any alias-expanded term in
    any haystack, or of a haystack (longer than 2 chars) in a term.
    """
    folded_hay = [fold(h) for h in haystacks if h]
    folded_hay = [h for h in folded_hay if h]
    if not folded_hay:
        return False

    for term in terms:
        if is_wildcard(term):
            continue
        for candidate in expand_aliases(term):
            for hay in folded_hay:
                if candidate in hay:
                    return True
                if len(hay) > 2 and hay in candidate:
                    return True
    return False


def real_terms(terms: Iterable[str]) -> list[str]:
    return [t for t in terms if not is_wildcard(t)]
