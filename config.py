"""
Konfiguration och konstanter för ruttbyggaren
"""

# API URLs
ORS_BASE_URL = "https://api.openrouteservice.org"
ORS_API_KEY_NAME = "ORS_API_KEY"
REQUEST_TIMEOUT = 30  # sekunder

# Routing-profiler per färdsätt
ORS_PROFILES = {
    "walk": "foot-walking",
    "drive": "driving-car",
}

# Enhetsomvandling
EARTH_RADIUS_M = 6371000
METERS_PER_MILE = 1609.34
FEET_PER_METER = 3.28084

# Hastigheter för tidsuppskattning (mph)
WALK_SPEED_MPH = 3.0
DRIVE_SPEED_MPH = 30.0

# Svårighetsgrad: distans + höjdökning/100
DIFFICULTY_ELEVATION_DIVISOR = 100.0
HARD_THRESHOLD = 8.0
MODERATE_THRESHOLD = 4.0

# Höjdintervall för filtrering (fot)
ELEVATION_RANGES = [
    ("Flat", 100.0),
    ("Low", 500.0),
    ("Medium", 1500.0),
]
ELEVATION_RANGE_MAX = "High"

# Bakgrundsanrop
ROUTING_WORKERS = 2

# Karta
DEFAULT_CENTER = [59.3293, 18.0686]  # Stockholm
DEFAULT_ZOOM = 13
SATELLITE_TILES = "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}"
SATELLITE_ATTRIBUTION = "Esri World Imagery"
