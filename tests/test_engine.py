"""Tests for whole Construction File simulation."""

import pytest
from eliot import add_destinations, remove_destination
from pydantic import BaseModel

from cfsim.engine import circular_products, products_table, resolve, run_step, simulate
from cfsim.enzymes import DEFAULT_REGISTRY
from cfsim.errors import (
    EnzymeSiteError,
    FragmentIndexError,
    UnrecognizedSequenceError,
    UnresolvedReferenceError,
    UnsupportedOperationError,
)
from cfsim.models import ConstructionFile, Product
from cfsim.parser import parse

from conftest import (
    BACKBONE,
    FORWARD_OLIGO,
    FWD_ANNEAL,
    INSERT_A,
    INSERT_B,
    INSERT_C,
    MIDDLE,
    REV_SITE,
    gg_part,
)

PCR_PRODUCT = FORWARD_OLIGO + MIDDLE + REV_SITE + "GGATCCTCAG"
PCR_DIGEST = "AATTC" + FWD_ANNEAL + MIDDLE + REV_SITE + "GGATC"
VECTOR_DIGEST = "GATCC" + BACKBONE + "GAATT"
LIGATION = PCR_DIGEST[:-4] + VECTOR_DIGEST[:-4]

GIBSON_CF = f"""
Gibson A B out
A {"ACGT" * 5 + "T" * 20}
B {"T" * 20 + "ACGT" * 5}
"""


class Miniprep(BaseModel):
    operation: str = "miniprep"
    output: str = "prep"


class TestResolve:
    """Test name resolution."""

    def test_products_before_sequences(self):
        assert resolve("x", {"x": "CCCC"}, {"x": "AAAA"}) == "CCCC"

    def test_sequences_are_cleaned(self):
        assert resolve("x", {}, {"x": "acgu"}) == "ACGT"

    def test_missing_name(self):
        with pytest.raises(UnresolvedReferenceError) as excinfo:
            resolve("missing", {}, {"x": "AAAA"}, step_output="out")
        assert excinfo.value.name == "missing"
        assert excinfo.value.step_output == "out"

    def test_invalid_sequence(self):
        with pytest.raises(UnrecognizedSequenceError):
            resolve("x", {}, {"x": "NOT DNA"})


@pytest.mark.integration
class TestSimulate:
    """Test end-to-end simulation."""

    def test_restriction_cloning(self, cloning_cf_text):
        products = simulate(parse(cloning_cf_text))
        assert [p.name for p in products] == ["pcrpdt", "pcrdig", "vecdig", "pLig", "pFinal"]
        assert products[0] == Product("pcrpdt", PCR_PRODUCT)
        assert products[1].sequence == PCR_DIGEST
        assert products[2].sequence == VECTOR_DIGEST
        assert products[3].sequence == LIGATION
        assert products[4] == Product("pFinal", LIGATION, circular=True)

    def test_declared_pcr_size(self, cloning_cf_text):
        cf = parse(cloning_cf_text)
        assert cf.steps[0].product_size == len(simulate(cf)[0].sequence)

    def test_size_mismatch_is_not_fatal(self, cloning_cf_text):
        text = cloning_cf_text.replace("(88 bp)", "(1000 bp)")
        assert simulate(parse(text))[0].sequence == PCR_PRODUCT

    def test_gibson_linear(self):
        products = simulate(parse(GIBSON_CF), check_circular=False)
        assert products == [Product("out", "ACGT" * 5 + "T" * 20 + "ACGT" * 5, circular=False)]

    def test_gibson_circular(self):
        assert simulate(parse(GIBSON_CF)) == [Product("out", "T" * 20 + "ACGT" * 5, circular=True)]

    def test_golden_gate(self):
        text = "\n".join([
            "GoldenGate pA pB pC BsaI pGG",
            "Transform pGG DH10B Kan pFinal",
            f"pA {gg_part('GGAG', INSERT_A, 'TACT')}",
            f"pB {gg_part('TACT', INSERT_B, 'GCTT')}",
            f"pC {gg_part('GCTT', INSERT_C, 'GGAG')}",
        ])
        products = simulate(parse(text))
        expected = "GCTT" + INSERT_C + "GGAG" + INSERT_A + "TACT" + INSERT_B
        assert products == [Product("pGG", expected, True), Product("pFinal", expected, True)]

    def test_blunt_ligation(self):
        products = simulate(parse("Blunt a b ab\na AAAA\nb CCCC"))
        assert products == [Product("ab", "AAAACCCC", circular=True)]

    def test_product_shadows_sequence(self):
        text = "Digest x EcoRI 1 x\nTransform x Mach1 out\nx AAAAGAATTCAAAA"
        products = simulate(parse(text))
        assert products == [Product("x", "AATTCAAAA"), Product("out", "AATTCAAAA")]

    def test_step_actions_log_inputs(self, cloning_cf_text):
        messages = []
        destination = messages.append
        add_destinations(destination)
        try:
            simulate(parse(cloning_cf_text))
        finally:
            remove_destination(destination)

        started = [m for m in messages
                   if m.get("action_type") == "simulate_step" and m.get("action_status") == "started"]
        this_run = started[-5:]
        assert this_run[0]["inputs"] == ["fwd", "rev", "template"]
        assert this_run[3]["inputs"] == ["pcrdig", "vecdig"]

    def test_products_are_independent_per_run(self, cloning_cf_text):
        cf = parse(cloning_cf_text)
        assert simulate(cf) == simulate(cf)

    def test_empty_construction_file(self):
        assert simulate(ConstructionFile()) == []

    def test_custom_registry(self):
        custom = DEFAULT_REGISTRY.extended(DEFAULT_REGISTRY["EcoRI"].model_copy(update={"name": "MyEcoRI"}))
        cf = parse("Digest x MyEcoRI 0 y\nx AAAAGAATTCAAAA")
        assert simulate(cf, registry=custom) == [Product("y", "AAAAGAATT")]
        with pytest.raises(EnzymeSiteError):
            simulate(cf)


class TestSimulateErrors:
    """Test that failures abort the whole run."""

    def test_undeclared_input(self):
        with pytest.raises(UnresolvedReferenceError) as excinfo:
            simulate(parse("Ligate a missing c\na AATTCCCCGAATT"))
        assert excinfo.value.name == "missing"
        assert excinfo.value.step_output == "c"

    def test_reference_to_later_output(self):
        text = "Transform pLig Mach1 pFinal\nBlunt a b pLig\na AAAA\nb CCCC"
        with pytest.raises(UnresolvedReferenceError) as excinfo:
            simulate(parse(text))
        assert excinfo.value.name == "pLig"

    def test_failing_step_aborts(self, cloning_cf_text):
        text = cloning_cf_text.replace("EcoRI/BamHI 1 vecdig", "EcoRI/BamHI 5 vecdig")
        with pytest.raises(FragmentIndexError):
            simulate(parse(text))

    def test_unsupported_operation(self):
        cf = ConstructionFile.model_construct(steps=[Miniprep()], sequences={})
        with pytest.raises(UnsupportedOperationError) as excinfo:
            simulate(cf)
        assert excinfo.value.operation == "miniprep"

    def test_run_step_unsupported(self):
        with pytest.raises(UnsupportedOperationError):
            run_step(Miniprep(), {}, {})


class TestProducts:
    """Test product bookkeeping helpers."""

    def test_circular_products(self, cloning_cf_text):
        assert circular_products(simulate(parse(cloning_cf_text))) == {"pLig", "pFinal"}

    def test_redefined_output_is_linear(self):
        text = "Blunt a b x\nDigest x EcoRI 0 x\nTransform x Mach1 out\na AAAAGAATTC\nb CCCC"
        products = simulate(parse(text))
        assert [p.circular for p in products] == [True, False, False]

    def test_linear_gibson_is_not_circular(self, plasmid):
        text = "\n".join([
            "Gibson f1 f2 f3 lin",
            "Transform lin Mach1 out",
            f"f1 {plasmid[0:120]}",
            f"f2 {plasmid[100:220]}",
            f"f3 {plasmid[200:300]}",
        ])
        products = simulate(parse(text), check_circular=False)
        assert products[0] == Product("lin", plasmid, circular=False)
        assert circular_products(products) == set()

    def test_unclosed_gibson_circle_is_not_circular(self):
        products = simulate(parse(GIBSON_CF), check_circular=False)
        assert not products[0].circular

    def test_products_table(self):
        rows = products_table([Product("a", "ACGT"), Product("b", "GG")])
        assert rows == [["name", "sequence", "length"], ["a", "ACGT", 4], ["b", "GG", 2]]
