# Registers every model with the mapper before any query runs
from venue_booking import models  # noqa: F401
