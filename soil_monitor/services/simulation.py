"""
Mock sensor data for the ingestion loop.

Produces readings in the ranges the field sensors report, with a small
share of them crossing the alert thresholds.
"""

import random
from typing import Optional

from soil_monitor.core.timeutils import utcnow
from soil_monitor.schemas.reading import Location, ReadingIn


FARM_LOCATIONS = [
    {'name': 'Batac Farm 1', 'lat': 18.0554, 'lng': 120.5649},
    {'name': 'Batac Farm 2', 'lat': 18.0589, 'lng': 120.5612},
    {'name': 'Batac Farm 3', 'lat': 18.0521, 'lng': 120.5687},
    {'name': 'Batac Farm 4', 'lat': 18.0498, 'lng': 120.5573},
    {'name': 'Batac Farm 5', 'lat': 18.0612, 'lng': 120.5714},
]

SENSOR_COUNT = 5


class MockReadingSource:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def next_reading(self) -> ReadingIn:
        rng = self.rng
        location = rng.choice(FARM_LOCATIONS)

        return ReadingIn(
            sensor_id=f"sensor_{rng.randint(1, SENSOR_COUNT)}",
            location=Location(**location),
            soil_moisture=rng.randint(30, 79),
            temperature=round(rng.uniform(25.0, 35.0), 1),
            humidity=rng.randint(60, 84),
            ph_level=round(rng.uniform(5.5, 8.0), 1),
            nitrogen=rng.randint(20, 79),
            phosphorus=rng.randint(15, 54),
            potassium=rng.randint(30, 99),
            battery_level=rng.randint(20, 99),
            timestamp=utcnow(),
        )
