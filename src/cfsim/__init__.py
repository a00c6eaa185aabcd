"""Construction File parsing and simulation."""

from cfsim.assembly import assemble, gibson, golden_gate
from cfsim.engine import simulate
from cfsim.enzymes import DEFAULT_REGISTRY, EnzymeRegistry, RestrictionEnzyme
from cfsim.errors import *  # noqa: F401,F403
from cfsim.models import PCR, Assemble, ConstructionFile, Digest, Ligate, Product, Transform
from cfsim.parser import parse, serialize
from cfsim.simulators import digest, ligate, pcr

__version__ = "0.1.0"
