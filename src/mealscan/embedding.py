"""
mealscan - image embeddings
Global-average-pooled MobileNetV3 features, L2 normalised
"""

import logging
import threading
from typing import Optional

import numpy as np
import torch
import torch.nn.functional as F
from PIL import Image
from torchvision.models import MobileNet_V3_Small_Weights, mobilenet_v3_small

from .config import Config

logger = logging.getLogger(__name__)


class ImageEmbedder:
    """Fixed-length feature vector for an image (576 floats)"""

    def __init__(self, device: str = None):
        self.device = torch.device(device or Config.EMBEDDING_DEVICE)
        self._model = None
        self._preprocess = None
        self._lock = threading.Lock()

    def _load_model(self):
        with self._lock:
            if self._model is not None:
                return self._model, self._preprocess

            weights = MobileNet_V3_Small_Weights.DEFAULT
            model = mobilenet_v3_small(weights=weights)
            model.eval().to(self.device)
            self._preprocess = weights.transforms()
            self._model = model
            logger.info("Loaded MobileNetV3-Small feature extractor")
            return self._model, self._preprocess

    def embed(self, image: Image.Image) -> Optional[np.ndarray]:
        model, preprocess = self._load_model()
        x = preprocess(image.convert("RGB")).unsqueeze(0).to(self.device)

        with torch.no_grad():
            features = model.features(x)
            pooled = model.avgpool(features).flatten(1)
            vector = F.normalize(pooled, dim=1)[0]

        return vector.cpu().numpy().astype(np.float32)
