"""
Species catalogue used to derive an observation's category.
"""

from scouting.exceptions import ScoutingValidationError
from scouting.models import ObservationCategory


SPECIES_CATEGORIES = {
    # Pests
    'APHID': ObservationCategory.PEST,
    'THRIPS': ObservationCategory.PEST,
    'RED_SPIDER_MITE': ObservationCategory.PEST,
    'WHITEFLIES': ObservationCategory.PEST,
    'MEALYBUGS': ObservationCategory.PEST,
    'CATERPILLARS': ObservationCategory.PEST,
    'FALSE_CODLING_MOTH': ObservationCategory.PEST,
    'PEST_OTHER': ObservationCategory.PEST,
    # Diseases
    'DOWNY_MILDEW': ObservationCategory.DISEASE,
    'POWDERY_MILDEW': ObservationCategory.DISEASE,
    'BOTRYTIS': ObservationCategory.DISEASE,
    'VERTICILLIUM': ObservationCategory.DISEASE,
    'BACTERIAL_WILT': ObservationCategory.DISEASE,
    'DISEASE_OTHER': ObservationCategory.DISEASE,
    # Beneficials
    'BENEFICIAL_PP': ObservationCategory.BENEFICIAL,
}


def normalize_species_code(code):
    if code is None or not str(code).strip():
        raise ScoutingValidationError('species_code is required', details={'field': 'species_code'})
    return str(code).strip().upper()


def resolve_category(species_code, category=None):
    """
    Category for a species. An explicit category wins; otherwise it comes
    from the catalogue, and unknown species must state one.
    """
    if category:
        category = str(category).strip().upper()
        if category not in ObservationCategory.values:
            raise ScoutingValidationError(
                f"Unknown observation category: {category}",
                details={'field': 'category', 'allowed': ObservationCategory.values}
            )
        return category

    try:
        return SPECIES_CATEGORIES[species_code]
    except KeyError:
        raise ScoutingValidationError(
            f"Unknown species {species_code}; provide a category",
            details={'field': 'category', 'species_code': species_code}
        )
