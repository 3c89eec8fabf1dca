# rentradar/adapters/location_resolver.py
from __future__ import annotations

from dataclasses import dataclass, field

from ..config import settings
from ..domain.locations import NEIGHBORHOOD_ALIASES
from ..domain.parsing import fold
from ..domain.types import ResolvedLocation


# canonical city name -> folded aliases
CITIES: dict[str, tuple[str, ...]] = {
    "Bogotá": ("bogota", "bogota d.c.", "bogota dc", "bogota d c", "santafe de bogota"),
    "Medellín": ("medellin",),
    "Cali": ("cali", "santiago de cali"),
    "Barranquilla": ("barranquilla",),
    "Cartagena": ("cartagena", "cartagena de indias"),
    "Bucaramanga": ("bucaramanga",),
    "Pereira": ("pereira",),
    "Envigado": ("envigado",),
    "Chía": ("chia",),
}

NEIGHBORHOODS: dict[str, tuple[str, ...]] = {
    "Bogotá": (
        "Usaquén", "Cedritos", "Santa Bárbara", "Country Club", "Chapinero", "Chicó", "Rosales",
        "Zona Rosa", "La Cabrera", "El Nogal", "Quinta Camacho", "Teusaquillo", "Galerías",
        "Suba", "Niza", "Colina Campestre", "Engativá", "Modelia", "Fontibón", "Hayuelos",
        "Salitre", "Kennedy", "Castilla", "Barrios Unidos", "La Candelaria", "Santa Fe",
    ),
    "Medellín": ("El Poblado", "Provenza", "Manila", "Laureles", "Estadio", "Belén", "Envigado", "Sabaneta"),
    "Cali": ("Granada", "San Fernando", "El Peñón", "Ciudad Jardín", "Santa Mónica"),
    "Barranquilla": ("El Prado", "Alto Prado", "Riomar", "Villa Country"),
    "Cartagena": ("Bocagrande", "Castillogrande", "Manga", "Crespo"),
}


@dataclass
class TableLocationResolver:
    """
    Small table-driven resolver for free-text places.

    Looks for a known neighborhood first (it implies the city), then a city name.
    Anything unknown falls back to the default city with low confidence.
    """

    default_city: str = field(default_factory=lambda: settings.DEFAULT_CITY)

    def resolve(self, free_text: str) -> ResolvedLocation:
        text = fold(free_text)
        if not text:
            return ResolvedLocation(city=self.default_city, neighborhood=None, confidence=0.3)

        city = self._match_city(text)

        cities = [city] if city else list(NEIGHBORHOODS.keys())
        for c in cities:
            for nb in NEIGHBORHOODS.get(c, ()):
                if fold(nb) in text:
                    return ResolvedLocation(city=c, neighborhood=nb, confidence=0.9)

        # alias parents such as "usaquen" are valid neighborhoods even when unlisted
        for parent in NEIGHBORHOOD_ALIASES:
            if parent in text:
                return ResolvedLocation(city=city or self.default_city, neighborhood=parent.title(), confidence=0.6)

        if city:
            return ResolvedLocation(city=city, neighborhood=None, confidence=0.8)
        return ResolvedLocation(city=self.default_city, neighborhood=None, confidence=0.3)

    @staticmethod
    def _match_city(text: str) -> str | None:
        for canonical, aliases in CITIES.items():
            if any(a in text for a in aliases):
                return canonical
        return None
