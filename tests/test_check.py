import pytest

from treetest_builder.backends import get_backend
from treetest_builder.check import (
    AttributeMismatch,
    Expectations,
    ExpectedTest,
    MissingArtifact,
    MissingContainer,
    OrderMismatch,
    UnparseableSource,
    check,
    check_text,
    expectations_from_hir,
    is_ordered_subsequence,
)
from treetest_builder.config import Config
from treetest_builder.emitter import emit
from treetest_builder.extract import ExtractedFacts, Unit, extract
from treetest_builder.translator import translate
from treetest_builder.tree import parse_tree

TREES = [
    "HashPairTest\n"
    "├── It should never revert.\n"
    "├── When first arg is smaller than second arg\n"
    "│   └── It should match the result of `keccak256(abi.encodePacked(a,b))`.\n"
    "└── When first arg is bigger than second arg\n"
    "    ├── Given the pair is cached\n"
    "    │   └── It returns the cached value.\n"
    "    │       └── no storage reads\n"
    "    └── It should match the result of `keccak256(abi.encodePacked(b,a))`.\n",
    "Pool::swap\n"
    "├── When paused\n"
    "│   └── It should revert when paused\n"
    "└── when PAUSED\n"
    "    └── It emits an error\n",
]


def _facts(*units):
    return ExtractedFacts(container_present=True, units=tuple(units))


def _test(name, marked=False):
    return Unit(name=name, role="test", markers=frozenset(), expect_failure=marked)


def _expect(*names, helpers=(), failing=()):
    return Expectations(
        helper_ids=tuple(helpers),
        tests=tuple(ExpectedTest(n, n in failing) for n in names),
        failure_marker="#[should_panic]",
        container_label="#[cfg(test)] mod tests",
    )


@pytest.mark.parametrize("lang", ["rust", "noir", "solidity"])
@pytest.mark.parametrize("tree", TREES)
@pytest.mark.parametrize("skip_helpers", [False, True])
def test_scaffold_then_check_is_clean(lang, tree, skip_helpers):
    cfg = Config(lang=lang, skip_helpers=skip_helpers)
    hir = translate(parse_tree(tree), cfg)
    backend = get_backend(cfg, hir.title)
    doc, violations = check_text(emit(hir, backend), expectations_from_hir(hir, backend), backend)
    assert doc is not None
    assert violations == []


def test_missing_container_stops():
    facts = ExtractedFacts(container_present=False)
    assert check(_expect("test_a"), facts) == [MissingContainer("#[cfg(test)] mod tests")]


def test_missing_helper_and_test():
    expected = _expect("test_a", "test_b", helpers=("x",))
    violations = check(expected, _facts(_test("test_a")))
    assert violations == [
        MissingArtifact("helper", "x"),
        MissingArtifact("test", "test_b"),
        OrderMismatch(("test_a", "test_b"), ("test_a",)),
    ]
    assert violations[0].message() == "Helper function 'x' is missing"
    assert violations[1].message() == "Test function 'test_b' is missing"


def test_skip_helpers_ignores_missing_helpers():
    expected = Expectations(helper_ids=("x",), tests=(), skip_helpers=True)
    assert check(expected, _facts()) == []


def test_missing_failure_marker():
    violations = check(_expect("test_a", failing=("test_a",)), _facts(_test("test_a")))
    assert violations == [AttributeMismatch("test_a", "#[should_panic]", "none")]
    assert violations[0].message() == (
        "Test function 'test_a' has incorrect attributes: expected #[should_panic], found none"
    )


def test_unexpected_marker_is_not_flagged():
    assert check(_expect("test_a"), _facts(_test("test_a", marked=True))) == []


def test_order_mismatch_reported_once():
    actual = _facts(
        Unit("setup", "other", frozenset(), False), _test("test_a"), _test("test_c"), _test("test_b")
    )
    violations = check(_expect("test_a", "test_b", "test_c"), actual)
    assert len(violations) == 1
    assert isinstance(violations[0], OrderMismatch)


def test_extra_tests_are_allowed():
    actual = _facts(_test("test_x"), _test("test_a"), _test("test_y"), _test("test_b"))
    assert check(_expect("test_a", "test_b"), actual) == []


@pytest.mark.parametrize(
    "expected, actual, ok",
    [
        ([], ["a"], True),
        (["a", "b"], ["a", "x", "b"], True),
        (["a", "b"], ["b", "a"], False),
        (["a", "b", "c"], ["setup", "a", "c", "b"], False),
        (["a"], [], False),
    ],
)
def test_is_ordered_subsequence(expected, actual, ok):
    assert is_ordered_subsequence(expected, actual) is ok


def test_rust_should_panic_detection():
    tree = "T\n└── It should revert when paused\n"
    cfg = Config(lang="rust")
    hir = translate(parse_tree(tree), cfg)
    backend = get_backend(cfg, hir.title)
    source = (
        "#[cfg(test)]\n"
        "mod tests {\n"
        "    #[test]\n"
        "    fn test_should_revert_when_paused() {}\n"
        "}\n"
    )
    _, violations = check_text(source, expectations_from_hir(hir, backend), backend)
    assert violations == [AttributeMismatch("test_should_revert_when_paused", "#[should_panic]", "none")]


def test_rust_tests_outside_container_do_not_count():
    cfg = Config(lang="rust", skip_helpers=True)
    backend = get_backend(cfg)
    hir = translate(parse_tree("T\n└── It a\n"), cfg)
    source = "#[test]\nfn test_a() {}\n\n#[cfg(test)]\nmod tests {}\n"
    _, violations = check_text(source, expectations_from_hir(hir, backend), backend)
    assert MissingArtifact("test", "test_a") in violations


def test_rust_missing_module():
    cfg = Config(lang="rust")
    backend = get_backend(cfg)
    hir = translate(parse_tree("T\n└── It a\n"), cfg)
    _, violations = check_text("fn main() {}\n", expectations_from_hir(hir, backend), backend)
    assert violations == [MissingContainer("#[cfg(test)] mod tests")]


def test_unparseable_source():
    cfg = Config(lang="solidity")
    backend = get_backend(cfg)
    hir = translate(parse_tree("T\n└── It a\n"), cfg)
    doc, violations = check_text("contract T {\n", expectations_from_hir(hir, backend), backend)
    assert doc is None
    assert len(violations) == 1
    assert isinstance(violations[0], UnparseableSource)
    assert not violations[0].fixable


def test_solidity_extract_roles():
    backend = get_backend(Config(lang="solidity"))
    source = (
        "contract T {\n"
        "    modifier whenPaused() { _; }\n"
        "    function setUp() public {}\n"
        "    function test_a() external whenPaused { vm.expectRevert(); }\n"
        "}\n"
        "function test_outside() {}\n"
    )
    _, facts = extract(source, backend)
    assert facts.helper_ids == ("whenPaused",)
    assert facts.test_ids == ("test_a",)
    assert facts.test("test_a").expect_failure
    assert [u.role for u in facts.units] == ["helper", "other", "test", "other"]


def test_noir_extract_roles():
    backend = get_backend(Config(lang="noir"))
    source = "fn helper() {}\n#[test(should_fail)]\nfn test_a() {}\n#[test]\nfn test_b() {}\n"
    _, facts = extract(source, backend)
    assert facts.helper_ids == ("helper",)
    assert facts.test_ids == ("test_a", "test_b")
    assert facts.test("test_a").expect_failure
    assert not facts.test("test_b").expect_failure


def test_violation_diagnostics():
    d = MissingArtifact("test", "test_a").to_diagnostic("a_test.rs")
    assert d.to_dict() == {
        "code": "E_CHECK_ARTIFACT_MISSING",
        "message": "Test function 'test_a' is missing",
        "expected": "test test_a",
        "got": "none",
        "path": "a_test.rs",
    }


def test_solidity_container_prefers_contract_named_after_tree():
    cfg = Config(lang="solidity")
    hir = translate(parse_tree("FooTest\n└── It a\n"), cfg)
    backend = get_backend(cfg, hir.title)
    source = (
        "contract Mock {}\n"
        "\n"
        "contract FooTest is Test {\n"
        "    function test_a() external {\n"
        "        // It a\n"
        "    }\n"
        "}\n"
    )
    _, violations = check_text(source, expectations_from_hir(hir, backend), backend)
    assert violations == []


def test_solidity_container_falls_back_to_test_contract():
    backend = get_backend(Config(lang="solidity"), "Other")
    source = "contract Mock {}\ncontract Harness is Base, Test {\n    function test_a() external {}\n}\n"
    _, facts = extract(source, backend)
    assert facts.test_ids == ("test_a",)


def test_duplicate_ids_are_counted():
    expected = _expect("test_a", "test_a", failing=("test_a",))
    assert check(expected, _facts(_test("test_a", marked=True))) == [
        MissingArtifact("test", "test_a"),
        OrderMismatch(("test_a", "test_a"), ("test_a",)),
    ]
    violations = check(expected, _facts(_test("test_a", marked=True), _test("test_a")))
    assert violations == [AttributeMismatch("test_a", "#[should_panic]", "none", 1)]
