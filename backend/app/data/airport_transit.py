"""Static layover hub data — city, coordinates, and airport→city transit.

Used for:
- Transit lookup in feasibility evaluation (one-way minutes + available modes)
- City/country naming when a feed only reports an IATA code
- Coordinates for the weather lookup
"""

# modes are unordered; the preference ranking lives in FeasibilityPolicy.
# transit_minutes = fastest one-way airport → city-centre option.
LAYOVER_HUBS: dict[str, dict] = {
    "DXB": {"city": "Dubai", "country": "AE", "lat": 25.2532, "lng": 55.3657,
            "transit_minutes": 20, "modes": ("metro", "taxi")},
    "IST": {"city": "Istanbul", "country": "TR", "lat": 41.2751, "lng": 28.7519,
            "transit_minutes": 45, "modes": ("metro", "bus", "taxi")},
    "AMS": {"city": "Amsterdam", "country": "NL", "lat": 52.3105, "lng": 4.7683,
            "transit_minutes": 15, "modes": ("train", "bus")},
    "SIN": {"city": "Singapore", "country": "SG", "lat": 1.3644, "lng": 103.9915,
            "transit_minutes": 20, "modes": ("metro", "taxi")},
    "DOH": {"city": "Doha", "country": "QA", "lat": 25.2731, "lng": 51.6080,
            "transit_minutes": 25, "modes": ("metro", "taxi")},
    "FRA": {"city": "Frankfurt", "country": "DE", "lat": 50.0379, "lng": 8.5622,
            "transit_minutes": 15, "modes": ("train", "taxi")},
    "LHR": {"city": "London", "country": "GB", "lat": 51.4700, "lng": -0.4543,
            "transit_minutes": 20, "modes": ("train", "metro", "taxi")},
    "CDG": {"city": "Paris", "country": "FR", "lat": 49.0097, "lng": 2.5479,
            "transit_minutes": 35, "modes": ("train", "bus", "taxi")},
    "HKG": {"city": "Hong Kong", "country": "HK", "lat": 22.3080, "lng": 113.9185,
            "transit_minutes": 25, "modes": ("train", "bus", "taxi")},
    "ICN": {"city": "Seoul", "country": "KR", "lat": 37.4602, "lng": 126.4407,
            "transit_minutes": 45, "modes": ("train", "bus")},
    "NRT": {"city": "Tokyo", "country": "JP", "lat": 35.7720, "lng": 140.3929,
            "transit_minutes": 40, "modes": ("train", "bus")},
    "JFK": {"city": "New York", "country": "US", "lat": 40.6413, "lng": -73.7781,
            "transit_minutes": 50, "modes": ("train", "taxi")},
    "LAX": {"city": "Los Angeles", "country": "US", "lat": 33.9425, "lng": -118.4081,
            "transit_minutes": 45, "modes": ("shuttle", "taxi")},
    "ORD": {"city": "Chicago", "country": "US", "lat": 41.9742, "lng": -87.9073,
            "transit_minutes": 45, "modes": ("train", "taxi")},
    "ATL": {"city": "Atlanta", "country": "US", "lat": 33.6407, "lng": -84.4277,
            "transit_minutes": 20, "modes": ("train", "taxi")},
    "DFW": {"city": "Dallas", "country": "US", "lat": 32.8998, "lng": -97.0403,
            "transit_minutes": 50, "modes": ("train", "taxi")},
    "MUC": {"city": "Munich", "country": "DE", "lat": 48.3538, "lng": 11.7861,
            "transit_minutes": 40, "modes": ("train", "bus")},
    "BKK": {"city": "Bangkok", "country": "TH", "lat": 13.6900, "lng": 100.7501,
            "transit_minutes": 30, "modes": ("train", "taxi")},
    "SYD": {"city": "Sydney", "country": "AU", "lat": -33.9399, "lng": 151.1753,
            "transit_minutes": 15, "modes": ("train", "taxi")},
    "AUH": {"city": "Abu Dhabi", "country": "AE", "lat": 24.4330, "lng": 54.6511,
            "transit_minutes": 35, "modes": ("bus", "taxi")},
    "KEF": {"city": "Reykjavik", "country": "IS", "lat": 63.9850, "lng": -22.6056,
            "transit_minutes": 45, "modes": ("shuttle", "bus")},
    "LIS": {"city": "Lisbon", "country": "PT", "lat": 38.7742, "lng": -9.1342,
            "transit_minutes": 20, "modes": ("metro", "taxi")},
    "HEL": {"city": "Helsinki", "country": "FI", "lat": 60.3172, "lng": 24.9633,
            "transit_minutes": 30, "modes": ("train", "bus")},
    "ZRH": {"city": "Zurich", "country": "CH", "lat": 47.4582, "lng": 8.5555,
            "transit_minutes": 12, "modes": ("train", "taxi")},
}

# Conservative default for airports we have no data for
DEFAULT_TRANSIT_MINUTES = 60
DEFAULT_TRANSIT_MODES = ("taxi",)


def get_hub(iata_code: str) -> dict | None:
    return LAYOVER_HUBS.get(iata_code.upper()) if iata_code else None


def get_coordinates(iata_code: str) -> tuple[float, float] | None:
    hub = get_hub(iata_code)
    if not hub:
        return None
    return hub["lat"], hub["lng"]


# IANA zones for hubs; provider feeds report local wall-clock times
HUB_TIMEZONES: dict[str, str] = {
    "DXB": "Asia/Dubai", "IST": "Europe/Istanbul", "AMS": "Europe/Amsterdam",
    "SIN": "Asia/Singapore", "DOH": "Asia/Qatar", "FRA": "Europe/Berlin",
    "LHR": "Europe/London", "CDG": "Europe/Paris", "HKG": "Asia/Hong_Kong",
    "ICN": "Asia/Seoul", "NRT": "Asia/Tokyo", "JFK": "America/New_York",
    "LAX": "America/Los_Angeles", "ORD": "America/Chicago", "ATL": "America/New_York",
    "DFW": "America/Chicago", "MUC": "Europe/Berlin", "BKK": "Asia/Bangkok",
    "SYD": "Australia/Sydney", "AUH": "Asia/Dubai", "KEF": "Atlantic/Reykjavik",
    "LIS": "Europe/Lisbon", "HEL": "Europe/Helsinki", "ZRH": "Europe/Zurich",
}


def get_timezone_name(iata_code: str) -> str:
    """IANA zone for a hub; UTC when unknown."""
    return HUB_TIMEZONES.get(iata_code.upper(), "UTC") if iata_code else "UTC"
