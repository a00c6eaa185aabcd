#!/usr/bin/env python3
"""
Construction File MCP Server - parse and simulate cloning plans via Model Context Protocol.

This server exposes the Construction File (CF) engine through the Model Context
Protocol (MCP). A CF is a short text plan of molecular-biology steps (PCR,
digestion, ligation, Golden Gate / Gibson assembly, transformation) together
with the named sequences they start from. The server parses such plans and
predicts the sequence produced by every step.

Key capabilities:
- CF parsing from text or tabular cells, and serialization back to text
- Whole-plan simulation with named products
- Single-step PCR, digestion and assembly
- Restriction enzyme registry listing
- Product export as FASTA or GenBank

Example workflows:
1. Paste a CF, simulate it, export the final plasmid as GenBank
2. Check a primer pair against a template before ordering
3. Verify that Golden Gate parts close into a single circular product
"""

import os
from typing import Any, Dict, List, Optional

from eliot import start_action
from fastmcp import FastMCP
from pydantic import BaseModel, Field

from cfsim.assembly import assemble_molecule
from cfsim.engine import simulate
from cfsim.enzymes import DEFAULT_REGISTRY, EnzymeRegistry
from cfsim.errors import ConstructionFileError
from cfsim.files import read_sequences, write_products
from cfsim.models import ConstructionFile
from cfsim.parser import parse, serialize
from cfsim.sequtils import resolve_sequence
from cfsim.simulators import digest_fragments, pcr

# Configuration
DEFAULT_HOST = os.getenv("MCP_HOST", "0.0.0.0")
DEFAULT_PORT = int(os.getenv("MCP_PORT", "3001"))
DEFAULT_TRANSPORT = os.getenv("MCP_TRANSPORT", "streamable-http")


# Pydantic models for structured responses
class ProductInfo(BaseModel):
    """A simulated product."""
    name: str = Field(description="Product name (the step's output)")
    sequence: str = Field(description="Predicted DNA sequence")
    length: int = Field(description="Length in bp")
    circular: bool = Field(description="Whether the product is a circular molecule")


class SimulationResult(BaseModel):
    """Result of simulating a whole Construction File."""
    products: List[ProductInfo] = Field(description="One product per step, in step order")
    num_steps: int = Field(description="Number of simulated steps")


class EnzymeInfo(BaseModel):
    """A restriction enzyme known to the simulator."""
    name: str = Field(description="Enzyme name")
    recognition_sequence: str = Field(description="Recognition site")
    cut5: int = Field(description="Top-strand cut offset from the end of the site")
    cut3: int = Field(description="Bottom-strand cut offset from the end of the site")
    five_prime_overhang: bool = Field(description="Whether the enzyme leaves a 5' overhang")


class ConstructionFileMCP(FastMCP):
    """Construction File MCP Server with parsing and simulation tools."""

    def __init__(
        self,
        name: str = "Construction File MCP Server",
        prefix: str = "cf_",
        registry: EnzymeRegistry = DEFAULT_REGISTRY,
        **kwargs
    ):
        """Initialize the CF tools with FastMCP functionality."""
        super().__init__(name=name, **kwargs)
        self.prefix = prefix
        self.registry = registry
        self._register_cf_tools()
        self._register_cf_resources()

    def _register_cf_tools(self):
        """Register CF-specific tools."""
        # Construction Files
        self.tool(name=f"{self.prefix}parse", description="Parse Construction File text into steps and sequences")(self.parse_construction_file)
        self.tool(name=f"{self.prefix}serialize", description="Write a structured Construction File back as CF text")(self.serialize_construction_file)
        self.tool(name=f"{self.prefix}simulate", description="Simulate every step of a Construction File")(self.simulate_construction_file)

        # Single steps
        self.tool(name=f"{self.prefix}pcr", description="Predict a PCR product from two oligos and a template")(self.pcr_product)
        self.tool(name=f"{self.prefix}digest", description="Cut a DNA with restriction enzymes")(self.digest_sequence)
        self.tool(name=f"{self.prefix}assemble", description="Golden Gate or Gibson assembly of DNA fragments")(self.assemble_fragments)

        # Enzymes and files
        self.tool(name=f"{self.prefix}list_enzymes", description="List the restriction enzymes the simulator knows")(self.list_enzymes)
        self.tool(name=f"{self.prefix}read_sequences", description="Read FASTA or GenBank text into named sequences")(self.read_sequence_file)
        self.tool(name=f"{self.prefix}export_products", description="Simulate a Construction File and export the products as FASTA or GenBank")(self.export_products)

    def _register_cf_resources(self):
        """Register CF-specific resources."""

        @self.resource(f"resource://{self.prefix}help")
        def get_cf_help() -> str:
            """
            Get help for the Construction File grammar and tools.

            Returns:
                Help documentation covering the CF operations and their layouts
            """
            return """
# Construction File MCP Server Help

## Overview
A Construction File lists construction steps, one per line, followed by the
sequences the steps start from. Tokens are separated by whitespace, commas,
parentheses or slashes; the words "on" and "with" are ignored.

## Operations
- PCR fwd rev template [size] output
- Digest dna enzyme[/enzyme...] fragment_index output   (fragment_index is zero-based)
- Ligate dna... output
- Blunt dna... output
- Assemble dna... enzyme output   (GoldenGate is a synonym)
- Gibson dna... output
- Transform dna strain [antibiotic...] [temperature] output

## Sequences
Any other line of the form `name SEQUENCE` defines an input sequence.

## Example
```
PCR ca4238F ca4238R on pTP1 (1000 bp) pcrpdt
Digest pcrpdt EcoRI/BamHI 1 pcrdig
Digest pBca9145 EcoRI/BamHI 1 vectdig
Ligate pcrdig vectdig pBca9145-gfp
Transform pBca9145-gfp Mach1 Amp 37 pBca9145-gfp
```
"""

    def parse_construction_file(self, text: str, strict: bool = False) -> Dict[str, Any]:
        """
        Parse Construction File text into its structured form.

        Args:
            text (str): CF text, one step or sequence definition per line
                Example: "Gibson partA partB pProduct\\npartA ACGT...\\npartB TTTT..."
            strict (bool, optional): Fail on unrecognized lines instead of
                ignoring them. Defaults to False.

        Returns:
            Dict[str, Any]: {"steps": [...], "sequences": {...}}; each step carries
                an "operation" tag (pcr, digest, ligate, assemble, transform)

        Example Output:
            {
                "steps": [{"operation": "assemble", "output": "pProduct",
                           "dnas": ["partA", "partB"], "enzyme": "gibson"}],
                "sequences": {"partA": "ACGT...", "partB": "TTTT..."}
            }

        Error Conditions:
            - strict=True and an unrecognized or malformed line raises ValueError
        """
        with start_action(action_type="parse_construction_file_tool", text_length=len(text), strict=strict) as action:
            try:
                cf = parse(text, strict=strict)
                result = cf.model_dump()
                action.add_success_fields(num_steps=len(cf.steps), num_sequences=len(cf.sequences))
                return result

            except ConstructionFileError as e:
                action.add_success_fields(error=str(e))
                raise ValueError(f"Error parsing construction file: {str(e)}") from e

    def serialize_construction_file(self, construction_file: Dict[str, Any]) -> str:
        """
        Write a structured Construction File back as CF text.

        Args:
            construction_file (Dict[str, Any]): {"steps": [...], "sequences": {...}},
                as returned by the parse tool

        Returns:
            str: Tab-separated CF text that parses back to the same structure

        Error Conditions:
            - Malformed step dictionaries raise ValueError
        """
        with start_action(action_type="serialize_construction_file") as action:
            try:
                cf = ConstructionFile.model_validate(construction_file)
                text = serialize(cf)
                action.add_success_fields(length=len(text))
                return text

            except ValueError as e:
                action.add_success_fields(error=str(e))
                raise ValueError(f"Error serializing construction file: {str(e)}") from e

    def simulate_construction_file(self, text: str, check_circular: bool = True, strict: bool = False) -> SimulationResult:
        """
        Parse and simulate a Construction File, step by step.

        Each step's inputs are looked up first among the products of earlier
        steps, then among the file's sequences. Steps run in document order.

        Args:
            text (str): CF text
            check_circular (bool, optional): Require Gibson assemblies to close
                into a circle. Defaults to True. Set False to accept linear
                assemblies as they are.
            strict (bool, optional): Fail on unrecognized lines. Defaults to False.

        Returns:
            SimulationResult: One product per step (name, sequence, length, circular)

        Error Conditions:
            - A step naming an unknown input raises ValueError
            - Primers that do not anneal, missing or duplicated enzyme sites,
              incompatible sticky ends or ambiguous Gibson overlaps raise ValueError
            - No partial results are returned
        """
        with start_action(action_type="simulate_construction_file_tool", text_length=len(text)) as action:
            try:
                cf = parse(text, strict=strict)
                products = simulate(cf, registry=self.registry, check_circular=check_circular)
                result = SimulationResult(
                    products=[
                        ProductInfo(
                            name=p.name,
                            sequence=p.sequence,
                            length=len(p.sequence),
                            circular=p.circular,
                        ) for p in products
                    ],
                    num_steps=len(cf.steps),
                )

                action.add_success_fields(products=[p.name for p in result.products])
                return result

            except ConstructionFileError as e:
                action.add_success_fields(error=str(e))
                raise ValueError(f"Error simulating construction file: {str(e)}") from e

    def pcr_product(self, forward_oligo: str, reverse_oligo: str, template: str) -> ProductInfo:
        """
        Predict the product of a PCR.

        The 3'-terminal 18 bases of each oligo must match the template exactly
        (either strand). 5' tails are carried into the product.

        Args:
            forward_oligo (str): Forward oligo, 5' to 3'
            reverse_oligo (str): Reverse oligo, 5' to 3'
            template (str): Template sequence; may be a plasmid written from any origin

        Returns:
            ProductInfo: The linear PCR product

        Error Conditions:
            - Oligo 3' ends not found on the template raise ValueError
            - Non-nucleotide characters raise ValueError
        """
        with start_action(action_type="pcr_product", template_length=len(template)) as action:
            try:
                product = pcr(resolve_sequence(forward_oligo), resolve_sequence(reverse_oligo), resolve_sequence(template))
                result = ProductInfo(name="pcr", sequence=product, length=len(product), circular=False)
                action.add_success_fields(product_length=result.length)
                return result

            except ConstructionFileError as e:
                action.add_success_fields(error=str(e))
                raise ValueError(f"Error in PCR: {str(e)}") from e

    def digest_sequence(self, sequence: str, enzymes: List[str]) -> Dict[str, Any]:
        """
        Cut a linear DNA with one or more restriction enzymes.

        Args:
            sequence (str): DNA to digest
            enzymes (List[str]): Enzyme names, e.g. ["EcoRI", "BamHI"]

        Returns:
            Dict[str, Any]: The fragments in positional order, each including its
                single-stranded overhangs; use the index as a Digest fragment index

        Error Conditions:
            - Unknown enzyme names raise ValueError
        """
        with start_action(action_type="digest_sequence", sequence_length=len(sequence), enzymes=enzymes) as action:
            try:
                fragments = digest_fragments(resolve_sequence(sequence), enzymes, self.registry)
                result = {
                    "enzymes_used": enzymes,
                    "num_fragments": len(fragments),
                    "fragments": [
                        {"index": i, "sequence": frag, "length": len(frag)}
                        for i, frag in enumerate(fragments)
                    ],
                }
                action.add_success_fields(num_fragments=len(fragments))
                return result

            except ConstructionFileError as e:
                action.add_success_fields(error=str(e))
                raise ValueError(f"Error in digestion: {str(e)}") from e

    def assemble_fragments(self, fragments: List[str], enzyme: str = "gibson", check_circular: bool = True) -> ProductInfo:
        """
        Assemble DNA fragments by Golden Gate or Gibson assembly.

        Args:
            fragments (List[str]): Fragment sequences
            enzyme (str, optional): A Type IIS enzyme (e.g. "BsaI") for Golden Gate,
                or "gibson" for 20 bp homology assembly. Defaults to "gibson".
            check_circular (bool, optional): Require Gibson products to be
                circular. Defaults to True.

        Returns:
            ProductInfo: The assembled product

        Error Conditions:
            - Golden Gate parts without exactly one site in each orientation
            - Palindromic, duplicated or non-matching sticky ends
            - Gibson overlaps that are ambiguous or absent
            - A linear Gibson product while check_circular is True
        """
        with start_action(action_type="assemble_fragments", num_fragments=len(fragments), enzyme=enzyme) as action:
            try:
                dnas = [resolve_sequence(frag) for frag in fragments]
                molecule = assemble_molecule(dnas, enzyme, self.registry, check_circular=check_circular)
                result = ProductInfo(name="assembly", sequence=molecule.sequence,
                                     length=len(molecule.sequence), circular=molecule.circular)
                action.add_success_fields(product_length=result.length)
                return result

            except ConstructionFileError as e:
                action.add_success_fields(error=str(e))
                raise ValueError(f"Error in assembly: {str(e)}") from e

    def list_enzymes(self) -> List[EnzymeInfo]:
        """
        List the restriction enzymes available to Digest and Assemble steps.

        Returns:
            List[EnzymeInfo]: Name, site, cut offsets and overhang polarity
        """
        with start_action(action_type="list_enzymes") as action:
            result = [
                EnzymeInfo(
                    name=enzyme.name,
                    recognition_sequence=enzyme.recognition_sequence,
                    cut5=enzyme.cut5,
                    cut3=enzyme.cut3,
                    five_prime_overhang=enzyme.is_five_prime,
                ) for enzyme in self.registry.values()
            ]
            action.add_success_fields(num_enzymes=len(result))
            return result

    def read_sequence_file(self, file_content: str) -> Dict[str, str]:
        """
        Read FASTA or GenBank text into named sequences for a Construction File.

        Args:
            file_content (str): One or more FASTA or GenBank records

        Returns:
            Dict[str, str]: Record name -> sequence

        Error Conditions:
            - Text without any sequence record raises ValueError
        """
        with start_action(action_type="read_sequence_file", content_length=len(file_content)) as action:
            try:
                sequences = read_sequences(file_content)
                action.add_success_fields(names=list(sequences))
                return sequences

            except ValueError as e:
                action.add_success_fields(error=str(e))
                raise ValueError(f"Error reading sequence file: {str(e)}") from e

    def export_products(self, text: str, file_format: str = "genbank", names: Optional[List[str]] = None) -> str:
        """
        Simulate a Construction File and export products as FASTA or GenBank.

        Args:
            text (str): CF text
            file_format (str, optional): "fasta", "genbank" or "gb". Defaults to "genbank".
            names (List[str], optional): Only export these products. Defaults to all.

        Returns:
            str: Formatted records; closed assemblies and ligations are marked circular
        """
        with start_action(action_type="export_products", format=file_format) as action:
            try:
                cf = parse(text)
                products = simulate(cf, registry=self.registry)
                if names is not None:
                    products = [p for p in products if p.name in names]
                formatted = write_products(products, file_format)
                action.add_success_fields(num_products=len(products), length=len(formatted))
                return formatted

            except ValueError as e:
                action.add_success_fields(error=str(e))
                raise ValueError(f"Error exporting products: {str(e)}") from e


def cli_app():
    """
    Run the Construction File MCP server with HTTP transport.

    Starts the server with Server-Sent Events (SSE) transport on the default
    host and port. This is suitable for web-based applications and HTTP clients.
    """
    app = ConstructionFileMCP()
    app.run(transport="sse", host=DEFAULT_HOST, port=DEFAULT_PORT)


def cli_app_stdio():
    """
    Run the Construction File MCP server with stdio transport.

    Starts the server with standard input/output transport. This is suitable
    for command-line applications and direct process communication.
    """
    app = ConstructionFileMCP()
    app.run(transport="stdio")


def run_server(transport: str = DEFAULT_TRANSPORT, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
    """Run the server with any transport FastMCP supports."""
    app = ConstructionFileMCP()
    if transport == "stdio":
        app.run(transport="stdio")
    else:
        app.run(transport=transport, host=host, port=port)


if __name__ == "__main__":
    cli_app_stdio()
