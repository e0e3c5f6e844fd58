from clinic_booking.storage.backends import (
    BlobBackend,
    JsonFileBackend,
    MemoryBackend,
    RedisBackend,
    create_backend,
)
from clinic_booking.storage.booking_store import (
    BookingStore,
    BookingStoreError,
    PersistenceError,
    SlotConflictError,
)

__all__ = [
    "BlobBackend", "MemoryBackend", "JsonFileBackend", "RedisBackend", "create_backend",
    "BookingStore", "BookingStoreError", "SlotConflictError", "PersistenceError",
]
