"""Extract structured crop suggestions from free-form model output.

The model is asked for a numbered list where each entry looks like::

    1. Rice
    Reason: Thrives in clay soils with standing water
    Best Planting Month: May
    Estimated Yield: 4-5 tonnes per hectare
    Care Instructions: Keep fields flooded until flowering

Real answers drift from that shape (markdown, missing labels, preambles), so
parsing is lenient: each entry is handled on its own and entries that do not
carry a crop name plus at least one labelled detail are dropped.
"""

from __future__ import annotations

import re

import structlog

from agrimarket.schemas.suggestion import CropSuggestion

logger = structlog.get_logger("agrimarket.suggestions")

_ENTRY_MARKER = re.compile(r"^\d+\.", re.MULTILINE)
_CROP_NAME = re.compile(r"^\s*([^\n]+)")
_LABELS: dict[str, re.Pattern[str]] = {
	"reason": re.compile(r"Reason:[ \t]*([^\n]*\S[^\n]*)", re.IGNORECASE),
	"best_planting_month": re.compile(r"Best Planting Month:[ \t]*([^\n]*\S[^\n]*)", re.IGNORECASE),
	"estimated_yield": re.compile(r"Estimated Yield:[ \t]*([^\n]*\S[^\n]*)", re.IGNORECASE),
	"care_instructions": re.compile(r"Care Instructions:[ \t]*([^\n]*\S[^\n]*)", re.IGNORECASE),
}


def split_entries(text: str) -> list[str]:
	"""Return the non-blank segments that follow each ``<n>.`` line marker.

	Text before the first marker is a preamble, not an entry.
	"""
	markers = list(_ENTRY_MARKER.finditer(text))
	segments: list[str] = []
	for index, marker in enumerate(markers):
		end = markers[index + 1].start() if index + 1 < len(markers) else len(text)
		segment = text[marker.end():end]
		if segment.strip():
			segments.append(segment)
	return segments


def parse_entry(segment: str) -> CropSuggestion | None:
	name_match = _CROP_NAME.match(segment)
	if name_match is None:
		return None
	crop_name = name_match.group(1).strip()

	details: dict[str, str] = {}
	for key, pattern in _LABELS.items():
		match = pattern.search(segment)
		details[key] = match.group(1).strip() if match else ""

	if not crop_name or not any(details.values()):
		return None
	return CropSuggestion(crop_name=crop_name, **details)


def parse_suggestions(text: str) -> list[CropSuggestion]:
	"""Parse every numbered entry in ``text``; never raises."""
	suggestions: list[CropSuggestion] = []
	for segment in split_entries(text or ""):
		try:
			suggestion = parse_entry(segment)
		except Exception as exc:
			logger.warning("suggestion_entry_skipped", error=str(exc))
			continue
		if suggestion is not None:
			suggestions.append(suggestion)
	return suggestions
