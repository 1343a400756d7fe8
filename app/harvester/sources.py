from __future__ import annotations

"""Searches and cities harvested by default.

The run entrypoints accept their own lists; these values are only the
defaults used when nothing is injected.
"""

import logging
from typing import Iterable, List, Sequence

from .models import Partition

LOGGER = logging.getLogger("harvester")

SEARCH_BASE_URL = "https://www.paginegialle.it/ricerca"

DEFAULT_SEARCHES: tuple[str, ...] = (
    "Agenzie marketing",
    "Agenzie immobiliari",
    "Agenzia viaggi",
    "Agenzia assicurazione",
    "Agenzie interinali",
    "Commercialisti",
    "Notai",
    "Studio legale",
    "Studio tecnico",
    "Studio tributario",
    "Avvocati",
    "Architetti",
    "Dentisti",
)

# One regional capital per region.
PRINCIPAL_CITIES: tuple[str, ...] = (
    "Roma", "Milano", "Napoli", "Torino", "Palermo", "Genova", "Bologna",
    "Firenze", "Venezia", "Bari", "Cagliari", "Ancona", "L'Aquila", "Potenza",
    "Catanzaro", "Perugia", "Trieste", "Aosta", "Trento", "Campobasso",
)

SECONDARY_CITIES: tuple[str, ...] = (
    # Lombardia
    "Bergamo", "Brescia", "Monza", "Como", "Pavia", "Varese", "Cremona",
    "Mantova", "Lecco", "Lodi", "Sondrio",
    # Lazio
    "Latina", "Frosinone", "Viterbo", "Rieti",
    # Campania
    "Salerno", "Caserta", "Avellino", "Benevento",
    # Piemonte
    "Novara", "Alessandria", "Asti", "Cuneo", "Biella", "Vercelli",
    "Verbano-Cusio-Ossola",
    # Sicilia
    "Catania", "Messina", "Siracusa", "Trapani", "Ragusa", "Agrigento", "Enna",
    "Caltanissetta",
    # Liguria
    "La Spezia", "Savona", "Imperia",
    # Emilia-Romagna
    "Modena", "Parma", "Reggio nell'Emilia", "Ravenna", "Ferrara", "Forlì",
    "Cesena", "Piacenza", "Rimini",
    # Toscana
    "Prato", "Livorno", "Pisa", "Arezzo", "Siena", "Grosseto", "Massa",
    "Carrara", "Lucca", "Pistoia",
    # Veneto
    "Verona", "Padova", "Vicenza", "Treviso", "Rovigo", "Belluno",
    # Puglia
    "Lecce", "Taranto", "Brindisi", "Foggia", "Barletta", "Andria", "Trani",
    # Sardegna
    "Sassari", "Nuoro", "Oristano", "Olbia", "Tempio Pausania", "Carbonia",
    "Iglesias",
    # Marche
    "Pesaro", "Urbino", "Macerata", "Ascoli Piceno", "Fermo",
    # Abruzzo
    "Pescara", "Chieti", "Teramo",
    # Basilicata
    "Matera",
    # Calabria
    "Reggio di Calabria", "Cosenza", "Crotone", "Vibo Valentia",
    # Umbria
    "Terni",
    # Friuli Venezia Giulia
    "Udine", "Pordenone", "Gorizia",
    # Trentino-Alto Adige/Südtirol
    "Bolzano", "Merano", "Rovereto",
    # Molise
    "Isernia",
)

ALL_CITIES: tuple[str, ...] = PRINCIPAL_CITIES + SECONDARY_CITIES


def search_url(query: str) -> str:
    """Return the search URL for a free-text query, or ``query`` if already a URL."""

    raw = (query or "").strip()
    if raw.lower().startswith(("http://", "https://")):
        return raw.rstrip("/")
    return f"{SEARCH_BASE_URL}/{raw.replace(' ', '%20')}"


def default_search_urls() -> List[str]:
    return [search_url(query) for query in DEFAULT_SEARCHES]


def build_partitions(source_url: str, cities: Iterable[str]) -> List[Partition]:
    """Expand a search into one partition per city, dropping blanks and repeats."""

    partitions: List[Partition] = []
    seen: set[str] = set()
    for city in cities:
        name = (city or "").strip()
        if not name:
            continue
        if name in seen:
            LOGGER.warning("[SOURCES][WARN] Duplicate city %r ignored.", name)
            continue
        seen.add(name)
        partitions.append(Partition(source_url=source_url, city=name))
    return partitions


def coerce_cities(raw: Sequence[str] | None) -> tuple[str, ...]:
    """Return ``raw`` as a city tuple, or every default city when empty."""

    if not raw:
        return ALL_CITIES
    return tuple(raw)
