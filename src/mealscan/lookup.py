"""
mealscan - barcode -> nutrition lookup
Local store first, OpenFoodFacts as the remote fallback
"""

import logging
from typing import Dict, Optional, Protocol

import requests

from .config import Config
from .models import KCAL_PER_KJ, SODIUM_MG_PER_SALT_G, NutritionEstimate
from .store import LocalBarcodeDB, normalize_code

logger = logging.getLogger(__name__)


class BarcodeLookup(Protocol):
    def lookup(self, code: str) -> Optional[NutritionEstimate]:
        ...


# OpenFoodFacts nutriment stem -> estimate field, for plain gram values
_GRAM_FIELDS = {
    'carbohydrates': 'carbohydrates',
    'proteins': 'protein',
    'fat': 'fat',
    'sugars': 'sugars',
    'starch': 'starch',
    'fiber': 'fibre',
    'monounsaturated-fat': 'monounsaturated_fat',
    'polyunsaturated-fat': 'polyunsaturated_fat',
    'saturated-fat': 'saturated_fat',
    'trans-fat': 'trans_fat',
}

_MILLIGRAM_FIELDS = {
    'vitamin-a': 'vitamin_a',
    'vitamin-c': 'vitamin_c',
    'vitamin-d': 'vitamin_d',
    'vitamin-e': 'vitamin_e',
    'vitamin-k': 'vitamin_k',
    'calcium': 'calcium',
    'iron': 'iron',
    'potassium': 'potassium',
    'zinc': 'zinc',
    'magnesium': 'magnesium',
}


def _first_number(nutriments: Dict, stem: str) -> Optional[float]:
    """Per-serving value when present, else per-100g"""
    for key in (f"{stem}_serving", f"{stem}_100g"):
        value = nutriments.get(key)
        if value is None or value == '':
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


class OpenFoodFactsClient:
    """Minimal OpenFoodFacts client to fetch product nutriments by barcode"""

    def __init__(self, base_url: str = None, timeout: float = None, session: requests.Session = None):
        self.base_url = base_url or Config.OPENFOODFACTS_URL
        self.timeout = timeout if timeout is not None else Config.OPENFOODFACTS_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', 'mealscan/0.1')

    def fetch_product(self, code: str) -> Optional[Dict]:
        """Query OpenFoodFacts database"""
        try:
            url = f"{self.base_url}/{code}.json"
            response = self.session.get(url, timeout=self.timeout)

            if response.status_code == 200:
                data = response.json()
                if data.get('status') == 1 and data.get('product'):
                    return data['product']
                logger.info(f"OpenFoodFacts has no product for {code}")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"OpenFoodFacts query failed: {e}")

        return None

    @staticmethod
    def map_product(product: Dict) -> Optional[NutritionEstimate]:
        """Map OpenFoodFacts nutriments to an estimate (kcal, g, mg)"""
        nutriments = product.get('nutriments') or {}
        estimate = NutritionEstimate()

        kcal = _first_number(nutriments, 'energy-kcal')
        if kcal is None:
            kj = _first_number(nutriments, 'energy')
            if kj is not None:
                kcal = kj * KCAL_PER_KJ
        estimate.fill_if_absent('calories', _clamp(kcal))

        for stem, name in _GRAM_FIELDS.items():
            estimate.fill_if_absent(name, _clamp(_first_number(nutriments, stem)))

        # OFF encodes sodium and salt in grams
        sodium_g = _first_number(nutriments, 'sodium')
        if sodium_g is not None:
            estimate.fill_if_absent('sodium_mg', _clamp(sodium_g * 1000))
        else:
            salt_g = _first_number(nutriments, 'salt')
            if salt_g is not None:
                estimate.fill_if_absent('sodium_mg', _clamp(salt_g * SODIUM_MG_PER_SALT_G))

        for stem, name in _MILLIGRAM_FIELDS.items():
            value = _first_number(nutriments, stem)
            if value is None:
                continue
            unit = str(nutriments.get(f"{stem}_unit") or '').lower()
            if any(u in unit for u in ('µg', 'μg', 'mcg', 'ug')):
                value = value / 1000
            estimate.fill_if_absent(name, _clamp(value))

        if estimate.is_empty():
            return None
        return estimate


def _clamp(value: Optional[float]) -> Optional[float]:
    return None if value is None else max(0.0, value)


class BarcodeRepository:
    """Local cache, then OpenFoodFacts; remote hits are saved locally"""

    def __init__(self, local: LocalBarcodeDB = None, remote: OpenFoodFactsClient = None,
                 remote_enabled: bool = None):
        self.local = local or LocalBarcodeDB(
            Config.DATABASE_PATH,
            seed_path=Config.ASSETS_DIR / Config.BARCODE_SEED_FILE
        )
        self.remote_enabled = Config.OPENFOODFACTS_ENABLED if remote_enabled is None else remote_enabled
        self.remote = remote or (OpenFoodFactsClient() if self.remote_enabled else None)

    def lookup(self, code: str) -> Optional[NutritionEstimate]:
        normalized = normalize_code(code)
        if not normalized:
            return None

        logger.info(f"Looking up barcode: {normalized}")
        try:
            local = self.local.lookup(normalized)
            if local is not None:
                return local
        except Exception as e:
            logger.error(f"Local barcode lookup failed: {e}")

        if not self.remote_enabled or self.remote is None:
            return None

        product = self.remote.fetch_product(normalized)
        if not product:
            return None
        estimate = self.remote.map_product(product)
        if estimate is None:
            return None

        try:
            self.local.upsert(normalized, estimate)
        except Exception as e:
            logger.warning(f"Could not cache {normalized} locally: {e}")
        return estimate
