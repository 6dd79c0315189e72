from photo_pairing.datasets.profiles import DISTRIBUTORS, PRODUCT_PROFILES
from photo_pairing.datasets.reference import ReferencePhotoSet, ReferencePhotoSetGenerator

__all__ = ["DISTRIBUTORS", "PRODUCT_PROFILES", "ReferencePhotoSet", "ReferencePhotoSetGenerator"]
