from .base import Base
from .models.cache import StoredObject  # Registers stored_objects table
