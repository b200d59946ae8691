from .base import MetadataProvider
from .openalex import OpenAlexProvider
