"""Single-batch fetch: build the generative request, call it, parse the JSON array.

A batch never raises to its caller. Any failure (transport, timeout, missing
or malformed JSON) is logged and reported as a failed BatchOutcome with no
records, so one bad batch only lowers the completeness of the merged result.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from leadfinder.core.models import BatchOutcome, BusinessRecord, Location, SearchFilters
from leadfinder.search.strategies import Strategy
from leadfinder.vendors.gemini import GenerationRequest, TextGenerator

logger = logging.getLogger(__name__)

JSON_ARRAY_REGEX = re.compile(r"\[[\s\S]*\]")

PLACE_MODE = "place"
RADIUS_MODE = "radius"
NEARBY_MODE = "nearby"

PROMPT_TEMPLATE = """
Atue como um gerador de leads focado em volume.

OBJETIVO:
Encontrar lista de negócios do tipo "{query}" {hint}.
{location}

INSTRUÇÕES ESTRITAS:
1. SEGMENTAÇÃO OBRIGATÓRIA: foque apenas em negócios {hint}. Não traga os mesmos lugares famosos de sempre.
2. QUANTIDADE: liste pelo menos {batch_size} locais únicos.
3. DADOS: o foco é NOME e TELEFONE. Se não achar email ou redes sociais, use null. NÃO EXCLUA O LOCAL DA LISTA.
4. PESQUISA: use o Google Maps para achar os locais e o Google Search apenas para confirmar um telefone.

SAÍDA JSON (ARRAY):
[
  {{
    "nome": "Nome Exato",
    "telefone": "(XX) XXXX-XXXX ou null",
    "email": "email ou null",
    "instagram": "url ou null",
    "facebook": "url ou null",
    "linkedin": "url ou null"
  }}
]
"""


class BatchFailure(RuntimeError):
    """Raised inside a batch when its response cannot be turned into records."""


@dataclass(frozen=True)
class LocationContext:
    mode: str
    description: str
    geo_bias: Optional[Location] = None


def resolve_location(location: Location, filters: SearchFilters, default_radius_km: float = 10.0) -> LocationContext:
    """Pick exactly one of the place-name, radius or nearby branches."""
    city = filters.city.strip()
    state = filters.state.strip()

    if city or state:
        parts = []
        if city:
            parts.append(f"cidade de {city}")
        if state:
            parts.append(f"estado de {state}")
        return LocationContext(PLACE_MODE, f"localizados em: {', '.join(parts)}")

    coords = f"{location.latitude:.6f}, {location.longitude:.6f}"
    if filters.radius_km > 0:
        description = f"num raio de {filters.radius_km:g}km das coordenadas {coords}"
        return LocationContext(RADIUS_MODE, description, geo_bias=location)

    description = f"próximos da minha localização atual ({coords}), até cerca de {default_radius_km:g}km"
    return LocationContext(NEARBY_MODE, description, geo_bias=location)


def build_prompt(query: str, location_context: LocationContext, strategy: Strategy, batch_size: int) -> str:
    return PROMPT_TEMPLATE.format(
        query=query.strip(),
        hint=strategy.hint,
        location=location_context.description,
        batch_size=batch_size,
    )


def build_request(
    query: str,
    location: Location,
    filters: SearchFilters,
    strategy: Strategy,
    batch_size: int,
    *,
    model: str,
    default_radius_km: float = 10.0,
) -> GenerationRequest:
    context = resolve_location(location, filters, default_radius_km)
    return GenerationRequest(
        model=model,
        prompt=build_prompt(query, context, strategy, batch_size),
        geo_bias=context.geo_bias,
    )


def extract_json_array(text: Optional[str]) -> Optional[str]:
    """Return the span from the first '[' to the last ']' or None."""
    if not text:
        return None
    match = JSON_ARRAY_REGEX.search(text)
    return match.group(0) if match else None


def parse_records(text: Optional[str]) -> List[BusinessRecord]:
    raw_array = extract_json_array(text)
    if raw_array is None:
        raise BatchFailure("response has no JSON array")
    try:
        data = json.loads(raw_array)
    except json.JSONDecodeError as exc:
        raise BatchFailure(f"invalid JSON array: {exc}") from exc
    if not isinstance(data, list):
        raise BatchFailure("JSON payload is not an array")

    records: List[BusinessRecord] = []
    for item in data:
        if not isinstance(item, dict):
            logger.debug("Skipping non-object item: %r", item)
            continue
        records.append(BusinessRecord.from_payload(item))
    return records


async def fetch_batch(
    generator: TextGenerator,
    query: str,
    location: Location,
    filters: SearchFilters,
    strategy: Strategy,
    batch_size: int,
    *,
    model: str,
    timeout: Optional[float] = None,
    default_radius_km: float = 10.0,
) -> BatchOutcome:
    try:
        request = build_request(
            query,
            location,
            filters,
            strategy,
            batch_size,
            model=model,
            default_radius_km=default_radius_km,
        )
        text = await asyncio.wait_for(generator.generate(request), timeout=timeout)
        records = parse_records(text)
    except asyncio.TimeoutError:
        logger.warning("Batch %s timed out after %ss", strategy.label, timeout)
        return BatchOutcome.failed(strategy.label, "timeout")
    except Exception as exc:  # noqa: BLE001
        logger.warning("Batch %s failed: %s", strategy.label, exc)
        return BatchOutcome.failed(strategy.label, str(exc) or type(exc).__name__)

    logger.info("Batch %s returned %d records", strategy.label, len(records))
    return BatchOutcome(strategy=strategy.label, records=records)
