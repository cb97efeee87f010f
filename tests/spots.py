"""
Test locations and tide records used across the test suite.

Each spot carries coordinates and one day of high/low events in the record
shape served by extremum stores.
"""

FISHING_SPOTS = {
    'port_phillip': {
        'name': 'Port Phillip Heads, Victoria',
        'lat': -38.29,
        'lon': 144.63,
        'tides': [
            {'type': 'low', 'datetime': '2024-01-15T02:10:00+00:00', 'height_m': 0.4},
            {'type': 'high', 'datetime': '2024-01-15T08:25:00+00:00', 'height_m': 1.9},
            {'type': 'low', 'datetime': '2024-01-15T14:40:00+00:00', 'height_m': 0.3},
            {'type': 'high', 'datetime': '2024-01-15T20:55:00+00:00', 'height_m': 2.0},
        ],
    },
    'moreton_bay': {
        'name': 'Moreton Bay, Queensland',
        'lat': -27.33,
        'lon': 153.23,
        'tides': [
            {'type': 'high', 'datetime': '2024-01-15T01:00:00Z', 'height_m': 2.3},
            {'type': 'low', 'datetime': '2024-01-15T07:15:00Z', 'height_m': 0.2},
            {'type': 'high', 'datetime': '2024-01-15T13:30:00Z', 'height_m': 2.1},
        ],
    },
}

# The worked example: low at 08:00, high at 14:00, 1.20 m at 11:00
WORKED_EXAMPLE = [
    {'type': 'low', 'datetime': '2024-01-15T08:00:00+00:00', 'height_m': 0.3},
    {'type': 'high', 'datetime': '2024-01-15T14:00:00+00:00', 'height_m': 2.1},
]
