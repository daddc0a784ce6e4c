"""Query expansion for polymer and plastics product names.

Customers ask for materials by Arabic transliteration, English trade name or
abbreviation. The catalog is named with abbreviations and English trade
names, so keyword search expands the query to those terms first.
"""

import re

KEYWORD_MAP: dict[str, list[str]] = {
    # HDPE
    "hdpe": ["HDPE", "High Density Polyethylene"],
    "اتش دي بي اي": ["HDPE", "High Density Polyethylene"],
    "بولي ايثيلين عالي الكثافة": ["HDPE", "High Density Polyethylene"],
    "بولي إيثيلين عالي": ["HDPE"],
    "high density polyethylene": ["HDPE"],
    # LDPE
    "ldpe": ["LDPE", "Low Density Polyethylene"],
    "ال دي بي اي": ["LDPE", "Low Density Polyethylene"],
    "بولي ايثيلين منخفض الكثافة": ["LDPE", "Low Density Polyethylene"],
    "بولي إيثيلين منخفض": ["LDPE"],
    "low density polyethylene": ["LDPE"],
    # PP
    "pp": ["PP", "Polypropylene"],
    "بي بي": ["PP", "Polypropylene"],
    "بولي بروبيلين": ["PP", "Polypropylene"],
    "polypropylene": ["PP", "Polypropylene"],
    # PVC
    "pvc": ["PVC", "Polyvinyl Chloride"],
    "بي في سي": ["PVC", "Polyvinyl Chloride"],
    "بولي فينيل كلورايد": ["PVC"],
    "polyvinyl chloride": ["PVC"],
    # PET
    "pet": ["PET", "Polyethylene Terephthalate"],
    "بي اي تي": ["PET", "Polyethylene Terephthalate"],
    "بولي إيثيلين تيريفثاليت": ["PET"],
    # PS
    "ps": ["PS", "Polystyrene"],
    "بي اس": ["PS", "Polystyrene"],
    "بولي ستايرين": ["PS", "Polystyrene"],
    "polystyrene": ["PS", "Polystyrene"],
    # Recycled
    "معاد تدويره": ["Recycled", "Recycled Materials"],
    "خامات معاد تدويرها": ["Recycled", "Recycled Materials"],
    "تدوير": ["Recycled", "Recycled Materials"],
    "recycled": ["Recycled", "Recycled Materials"],
    "regrind": ["Recycled", "Regrind"],
    # Masterbatch
    "ماستر باتش": ["Masterbatch", "Color Masterbatch"],
    "masterbatch": ["Masterbatch"],
    "ملونات": ["Masterbatch", "Pigment"],
    "صبغة": ["Masterbatch", "Pigment", "Color"],
    # Additives
    "اضافات": ["Additives", "Plastic Additives"],
    "additives": ["Additives", "Plastic Additives"],
    "مثبتات": ["Stabilizers", "UV Stabilizers"],
    "stabilizers": ["Stabilizers"],
    # General
    "خامات": ["Raw Materials", "Polymers"],
    "بوليمر": ["Polymer", "Polymers"],
    "بوليمرات": ["Polymers"],
    "polymers": ["Polymers", "Polymer"],
    "بلاستيك": ["Plastic", "Plastics", "Polymers"],
    "plastic": ["Plastic", "Plastics"],
    "raw materials": ["Raw Materials", "Polymers"],
    # Applications
    "انابيب": ["Pipes", "HDPE", "PVC"],
    "pipes": ["Pipes", "HDPE", "PVC"],
    "تغليف": ["Packaging", "LDPE", "PP"],
    "packaging": ["Packaging", "LDPE", "PP"],
    "عبوات": ["Containers", "PET", "PP"],
    "containers": ["Containers", "PET", "PP"],
    "فيلم": ["Film", "LDPE", "HDPE"],
    "film": ["Film", "LDPE", "HDPE"],
}

FUZZY_CORRECTIONS: dict[str, str] = {
    "اتش دي": "hdpe",
    "ال دي": "ldpe",
    "بولي بروبلين": "بولي بروبيلين",
    "بولي إثيلين": "بولي إيثيلين",
    "بلاستك": "بلاستيك",
    "خاماة": "خامات",
    "بوليمير": "بوليمر",
}

# Longest keywords first
_PATTERNS: list[tuple[re.Pattern[str], list[str]]] = [
    (re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)"), terms)
    for keyword, terms in sorted(KEYWORD_MAP.items(), key=lambda item: -len(item[0]))
]


def expand_query(query: str) -> list[str]:
    """Expand a free-text query into catalog search terms.

    Args:
        query: Customer query in Arabic or English

    Returns:
        Search terms, most specific first. The original query is returned
        unchanged when no keyword is recognized.
    """
    normalized = " ".join(query.lower().split())
    normalized = FUZZY_CORRECTIONS.get(normalized, normalized)

    if normalized in KEYWORD_MAP:
        return list(KEYWORD_MAP[normalized])

    terms: list[str] = []
    for pattern, mapped in _PATTERNS:
        if pattern.search(normalized):
            terms.extend(term for term in mapped if term not in terms)
    if terms:
        return terms

    return [query.strip()]
