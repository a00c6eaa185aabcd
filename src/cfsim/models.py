"""
Pydantic models for Construction Files.

A ConstructionFile is an ordered list of steps plus a dictionary of named input
sequences. Steps are a tagged union discriminated by ``operation``, which is
also the JSON wire format shared by the parser, the simulator and the MCP tools.
"""

from typing import Annotated, Dict, List, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, Field

GIBSON_MARKER = "gibson"


class PCR(BaseModel):
    """Amplify a template with a forward and a reverse oligo."""
    operation: Literal["pcr"] = "pcr"
    output: str = Field(description="Name of the PCR product")
    forward_oligo: str = Field(description="Name of the forward oligo")
    reverse_oligo: str = Field(description="Name of the reverse oligo")
    template: str = Field(description="Name of the template")
    product_size: Optional[int] = Field(default=None, description="Declared product size in bp")

    @property
    def inputs(self) -> List[str]:
        return [self.forward_oligo, self.reverse_oligo, self.template]


class Digest(BaseModel):
    """Cut a DNA with one or more enzymes and keep one fragment."""
    operation: Literal["digest"] = "digest"
    output: str = Field(description="Name of the selected fragment")
    dna: str = Field(description="Name of the DNA to digest")
    enzymes: List[str] = Field(description="Enzyme names")
    frag_select: int = Field(description="Zero-based index of the fragment to keep")

    @property
    def inputs(self) -> List[str]:
        return [self.dna]


class Ligate(BaseModel):
    """Join fragments by their overhangs, or end to end when blunt."""
    operation: Literal["ligate"] = "ligate"
    output: str = Field(description="Name of the ligation product")
    dnas: List[str] = Field(description="Names of the fragments to join")
    blunt: bool = Field(default=False, description="Blunt-end ligation")

    @property
    def inputs(self) -> List[str]:
        return list(self.dnas)


class Assemble(BaseModel):
    """Golden Gate (enzyme) or Gibson (homology) assembly."""
    operation: Literal["assemble"] = "assemble"
    output: str = Field(description="Name of the assembly product")
    dnas: List[str] = Field(description="Names of the parts")
    enzyme: str = Field(default=GIBSON_MARKER, description="Type IIS enzyme, or 'gibson'")

    @property
    def inputs(self) -> List[str]:
        return list(self.dnas)

    @property
    def is_gibson(self) -> bool:
        return self.enzyme.lower() == GIBSON_MARKER


class Transform(BaseModel):
    """Transform a DNA into a strain; the sequence itself is unchanged."""
    operation: Literal["transform"] = "transform"
    output: str = Field(description="Name of the transformed construct")
    dna: str = Field(description="Name of the DNA to transform")
    strain: str = Field(description="Host strain")
    antibiotics: List[str] = Field(default_factory=list, description="Selection markers")
    temperature: Optional[float] = Field(default=None, description="Incubation temperature")

    @property
    def inputs(self) -> List[str]:
        return [self.dna]


ConstructionStep = Annotated[
    Union[PCR, Digest, Ligate, Assemble, Transform],
    Field(discriminator="operation"),
]


class ConstructionFile(BaseModel):
    """Ordered construction steps and the named sequences they start from."""
    steps: List[ConstructionStep] = Field(default_factory=list)
    sequences: Dict[str, str] = Field(default_factory=dict)


class Product(NamedTuple):
    """A simulated product and whether the molecule that came out is circular."""
    name: str
    sequence: str
    circular: bool = False
