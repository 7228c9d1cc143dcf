"""Application-wide constants.

Physical constants come from scipy.constants (CODATA). Everything else is
a simulation default that can be overridden through the config dataclasses.
"""

from scipy.constants import c as _C, e as _E, m_e as _M_E

APP_NAME = "PMT Cascade Simulator"
APP_VERSION = "0.1.0"
APP_ORGANIZATION = "MSS"

# Physical constants (SI)
ELECTRON_CHARGE = -_E          # C
ELECTRON_MASS = _M_E           # kg
SPEED_OF_LIGHT = _C            # m/s
COULOMB_CONSTANT = 8.9875517923e9  # N·m²/C²

# Exact (relativistic) engine
DEFAULT_DELTA_T = 1e-12        # s
MAX_STEPS_PER_PARTICLE = 100_000
MAX_GENERATIONS = 64
SECONDARY_ENERGY_EV = 2.0      # W_sec
SPAWN_THRESHOLD_EV = 5.0
SIGMA_FLOOR = 1e-3             # floor for γ⁻² − |τ|²
TAU_NEGLIGIBLE = 1e-10         # |τ|² below this → no magnetic rotation

# Sternglass-type SEY defaults
SEY_DELTA_MAX = 4.0
SEY_E_MAX_EV = 300.0
SEY_SHAPE = 1.35
SEY_THRESHOLD_EV = 10.0
SEY_ANGLE_EXPONENT = 0.7
SEY_JITTER = 0.1               # ±10 %
SEY_MIN_COS = 1e-3
SEY_MIN_YIELD = 1e-300         # floor above threshold; exp(-s·r) underflows near 1.7e5 eV

# Per-component dynode model defaults
DYNODE_SIMPLE_R = 2.0
DYNODE_SIMPLE_BETA = 0.0
DYNODE_PHI_W = 1.0
DYNODE_PHI_0 = 1.0
DYNODE_SIGMA_E = 2.2           # eV
DYNODE_E_0 = 1.0
DYNODE_ALPHA = 1.0
DYNODE_GAMMA = 1.0
DYNODE_LAMBDA = 1.0

# Field evaluation
FIELD_EPSILON_PX = 1e-4        # |d|² below this is skipped (pixel units)

# Interactive (frame) engine
FRAME_DELTA_T = 0.1
MAX_PARTICLES = 1000
MAX_FRAME_SPEED = 50.0         # px per time unit
CANVAS_WIDTH = 1000.0
CANVAS_HEIGHT = 600.0
CANVAS_MARGIN = 100.0
FRAME_INTERVAL_MS = 16

# Geometry
DEFAULT_HALF_WIDTH = 10.0      # implicit square component [px]
DINODE_PLATE_LENGTH = 40.0     # default-tube dinode plate [px]
DINODE_PLATE_THICKNESS = 4.0
ELLIPSE_SEGMENTS = 32
DEFAULT_MM_PER_PX = 0.1

# Layout serialization
LAYOUT_SCHEMA_VERSION = "1.0"
