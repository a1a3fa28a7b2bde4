import re

# Only these characters are stripped; other punctuation (hyphens, commas...) is kept
_STRIPPED_CHARS = re.compile(r"[.;'\"\[\]{}]")


def _capitalize(token: str) -> str:
    head = token[0].upper()
    # upper() may expand one character into several ("ß" -> "SS")
    return head[0] + (head[1:] + token[1:]).lower()


def normalize_patient_name(raw: str) -> str:
    """
    Canonical display form of a free-text patient name.

    "  maria  SILVA santos." -> "Maria Silva Santos"
    "ana;paula"              -> "Anapaula"
    """
    cleaned = _STRIPPED_CHARS.sub("", raw or "")
    return " ".join(_capitalize(token) for token in cleaned.split())


def name_key(raw: str) -> str:
    """Identity key used to decide whether two names are the same patient."""
    return normalize_patient_name(raw).lower()
