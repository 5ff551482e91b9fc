"""
Enumerations shared by the facility model and the import schema.
"""

from typing import Literal, get_args

FacilityType = Literal[
    "basketball",
    "soccer",
    "tennis",
    "badminton",
    "swimming",
    "running",
    "fitness",
    "sports_ground",
    "sports_centre",
    "other",
]

District = Literal[
    "central",
    "eastern",
    "southern",
    "wanchai",
    "kowloon_city",
    "kwun_tong",
    "sham_shui_po",
    "wong_tai_sin",
    "yau_tsim_mong",
    "islands",
    "kwai_tsing",
    "north",
    "sai_kung",
    "sha_tin",
    "tai_po",
    "tsuen_wan",
    "tuen_mun",
    "yuen_long",
]

FACILITY_TYPES = get_args(FacilityType)
DISTRICTS = get_args(District)

FACILITY_TYPE_CHOICES = [
    (value, value.replace("_", " ").title()) for value in FACILITY_TYPES
]
DISTRICT_CHOICES = [(value, value.replace("_", " ").title()) for value in DISTRICTS]
