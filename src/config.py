"""
Configuration management for the fatal crash map slides
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("CRASH_DATA_DIR", str(PROJECT_ROOT / "data"))).expanduser()
SLIDES_DIR = PROJECT_ROOT / "slides"
TEMPLATE_DIR = Path(__file__).parent / "visualization" / "templates"
OUTPUT_DIR = Path(os.getenv("DECK_OUTPUT_DIR", str(PROJECT_ROOT / "output"))).expanduser()

# Input tables produced by the upstream ETL step
CRASH_TABLE_PATH = Path(
    os.getenv("CRASH_TABLE_PATH", str(DATA_DIR / "fars_crashes.parquet"))
).expanduser()
# Optional; columns: geoid, population
POPULATION_TABLE_PATH = Path(
    os.getenv("POPULATION_TABLE_PATH", str(DATA_DIR / "state_population.csv"))
).expanduser()

# Year highlighted throughout the talk
FOCUS_YEAR = int(os.getenv("FOCUS_YEAR", "2019"))

# Boundary provider (US Census cartographic boundary files)
BOUNDARY_BASE_URL = (
    os.getenv("BOUNDARY_BASE_URL", "https://www2.census.gov/geo/tiger")
    .strip()
    .rstrip("/")
)
BOUNDARY_YEAR = int(os.getenv("BOUNDARY_YEAR", str(FOCUS_YEAR)))
BOUNDARY_RESOLUTION = os.getenv("BOUNDARY_RESOLUTION", "20m").strip()
BOUNDARY_TIMEOUT = float(os.getenv("BOUNDARY_TIMEOUT", "60"))
BOUNDARY_CACHE_DIR = Path(
    os.getenv("BOUNDARY_CACHE_DIR", str(DATA_DIR / "boundaries"))
).expanduser()

# Map Configuration
DEFAULT_MAP_CENTER = [39.8283, -98.5795]  # geographic center of the contiguous US
DEFAULT_MAP_ZOOM = 4
MAP_TILES = os.getenv("MAP_TILES", "CartoDB positron")

SEASON_COLORS = {
    "summer": "#f46d43",
    "winter": "#4575b4",
}
HEAT_GRADIENT = {0.2: "#ffffb2", 0.4: "#fecc5c", 0.6: "#fd8d3c", 0.8: "#f03b20", 1.0: "#bd0026"}
HEAT_RADIUS = 8
HEAT_BLUR = 10
POINT_RADIUS = 2
CHOROPLETH_PALETTE = "YlOrRd"

# Point maps above this size are sampled (seeded, so builds are reproducible)
MAX_MAP_POINTS = int(os.getenv("MAX_MAP_POINTS", "20000"))
SAMPLE_SEED = 42

# Slide document
DECK_TITLE = os.getenv("DECK_TITLE", "Mapping Fatal Crashes")
REVEAL_CDN = "https://cdn.jsdelivr.net/npm/reveal.js@5.1.0"
REVEAL_THEME = os.getenv("REVEAL_THEME", "white")
