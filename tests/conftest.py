"""Shared fixtures and sequence builders for the cfsim tests."""

import random

import pytest

from cfsim.enzymes import DEFAULT_REGISTRY
from cfsim.sequtils import reverse_complement
from cfsim.server import ConstructionFileMCP

# PCR template pieces; none contains an EcoRI or BamHI site
FWD_ANNEAL = "ATGAGTAAAGGAGAAGAA"
MIDDLE = "CTTTTCACTGGAGTTGTCCCAATTCTTGTTG"
REV_SITE = "GGCATGGATGAACTATAC"
TEMPLATE = "GGGCCC" + FWD_ANNEAL + MIDDLE + REV_SITE + "TTTAAA"

FORWARD_OLIGO = "CCATAGAATTC" + FWD_ANNEAL
REVERSE_OLIGO = "CTGAGGATCC" + reverse_complement(REV_SITE)

BACKBONE = "GCGGCCGCTTTTCCCGGGAAATTTGTCGAC"
VECTOR = "AAAAGGATCC" + BACKBONE + "GAATTCAAAA"

# Golden Gate inserts; no BsaI site in either orientation
INSERT_A = "ATGCGTAAAGGCGAA"
INSERT_B = "CTGTTCACCGGCGTT"
INSERT_C = "GTGCCCATCCTGGTC"


def gg_part(end5: str, insert: str, end3: str) -> str:
    """A part with inward-facing BsaI sites releasing ``end5 + insert + end3``."""
    return "AA" + "GGTCTC" + "A" + end5 + insert + end3 + "T" + "GAGACC" + "TT"


def random_dna(length: int, seed: int) -> str:
    rng = random.Random(seed)
    return "".join(rng.choice("ACGT") for _ in range(length))


@pytest.fixture
def registry():
    return DEFAULT_REGISTRY


@pytest.fixture
def mcp_server():
    """Create a Construction File MCP server instance for testing."""
    return ConstructionFileMCP()


@pytest.fixture
def plasmid():
    """A 300 bp circular sequence, written from an arbitrary origin."""
    return random_dna(300, seed=7)


@pytest.fixture
def cloning_cf_text():
    """A restriction cloning plan: PCR, two digests, ligation, transformation."""
    return f"""
Construction of pLig, an EcoRI/BamHI clone
PCR fwd rev on template (88 bp) pcrpdt
Digest pcrpdt EcoRI/BamHI 1 pcrdig
Digest vector EcoRI/BamHI 1 vecdig
Ligate pcrdig vecdig pLig
Transform pLig Mach1 Amp 37 pFinal

fwd\t{FORWARD_OLIGO.lower()}
rev\t{REVERSE_OLIGO}
template\t{TEMPLATE}
vector\t{VECTOR}
"""
