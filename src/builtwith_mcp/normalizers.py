"""Post-processing applied to successful upstream payloads."""

from typing import Any, Dict, List

NO_TECHNOLOGIES_FOUND = {"error": "No technologies found"}

TECHNOLOGY_FIELDS = ("Name", "Description", "Tag", "Link")


def identity(payload: Any) -> Any:
    return payload


def extract_technologies(data: Any) -> List[Dict[str, str]]:
    """
    Flatten Results[0].Result.Paths[*].Technologies[*] into flat records.

    Any missing or mistyped level yields no records. Empty technology entries
    are skipped; missing fields become "".
    """
    extracted: List[Dict[str, str]] = []

    results = data.get("Results") if isinstance(data, dict) else None
    if not isinstance(results, list) or not results:
        return extracted
    first = results[0]
    result = first.get("Result") if isinstance(first, dict) else None
    paths = result.get("Paths") if isinstance(result, dict) else None
    if not isinstance(paths, list):
        return extracted

    for path in paths:
        technologies = path.get("Technologies") if isinstance(path, dict) else None
        if not isinstance(technologies, list):
            continue
        for tech in technologies:
            if not tech:
                continue
            source = tech if isinstance(tech, dict) else {}
            extracted.append({
                field: (source.get(field) or "") for field in TECHNOLOGY_FIELDS
            })

    return extracted


def normalize_domain_lookup(payload: Any) -> Any:
    """Flattened technologies, or the explicit no-technologies marker."""
    technologies = extract_technologies(payload)
    if not technologies:
        return dict(NO_TECHNOLOGIES_FOUND)
    return technologies
