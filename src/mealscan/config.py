"""
mealscan - configuration and logging setup
"""

import os
import logging
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Central configuration for the pipeline"""

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Data Paths
    PACKAGE_DIR = Path(__file__).resolve().parent
    ASSETS_DIR = Path(os.getenv('MEALSCAN_ASSETS_DIR', str(PACKAGE_DIR / 'assets')))
    DATA_DIR = Path(os.getenv('MEALSCAN_DATA_DIR', './data'))
    DATABASE_PATH = DATA_DIR / 'barcodes.db'
    REFERENCE_MANIFEST = 'food_reference_index.json'
    BARCODE_SEED_FILE = 'local_barcode_db.json'

    # OpenFoodFacts
    OPENFOODFACTS_ENABLED = _env_bool('OPENFOODFACTS_ENABLED', 'true')
    OPENFOODFACTS_URL = "https://world.openfoodfacts.org/api/v2/product"
    OPENFOODFACTS_TIMEOUT = float(os.getenv('OPENFOODFACTS_TIMEOUT', '10'))

    # Text recognition
    OCR_TIMEOUT = float(os.getenv('OCR_TIMEOUT', '8'))
    OCR_MIN_FAST_CHARS = int(os.getenv('OCR_MIN_FAST_CHARS', '20'))

    # Pipeline
    MAX_IMAGE_EDGE = int(os.getenv('MAX_IMAGE_EDGE', '1080'))
    ROTATION_WORKERS = int(os.getenv('ROTATION_WORKERS', '4'))
    SOFT_BUDGET_SECONDS = float(os.getenv('SOFT_BUDGET_SECONDS', '15'))

    # Embedding
    EMBEDDING_DEVICE = os.getenv('EMBEDDING_DEVICE', 'cpu')


def setup_logging(level: str = None):
    """Configure root logging the same way for the CLI and the demo app"""
    logging.basicConfig(
        level=level or Config.LOG_LEVEL,
        format=LOG_FORMAT
    )
