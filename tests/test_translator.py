import pytest

from treetest_builder.config import Config
from treetest_builder.errors import StructureError
from treetest_builder.hir import ContextRecord, HelperUnit
from treetest_builder.hir import TestGroup as HirTestGroup
from treetest_builder.translator import translate
from treetest_builder.tree import Action, ActionDescription, Condition, Root, parse_tree


def test_condition_and_action_names():
    root = Root(title="T", children=(Condition("When x", (Action("It does y."),)),))
    hir = translate(root, Config(lang="rust"))
    assert isinstance(hir.children[0], ContextRecord)
    assert [h.ident for h in hir.helpers] == ["x"]
    assert [u.ident for u in hir.tests] == ["test_x_does_y"]
    assert isinstance(hir.children[-1], HirTestGroup)


def test_case_insensitive_conditions_share_one_helper():
    root = parse_tree(
        "T\n"
        "├── When x\n"
        "│   └── It a\n"
        "└── when X\n"
        "    └── It b\n"
    )
    hir = translate(root, Config())
    assert hir.helpers == (HelperUnit(ident="x", source_title="When x", span=hir.helpers[0].span),)
    assert [u.ident for u in hir.tests] == ["test_x_a", "test_x_b"]


def test_tests_follow_preorder_and_last_helper():
    root = parse_tree(
        "T\n"
        "├── It first\n"
        "└── When outer\n"
        "    ├── Given inner\n"
        "    │   └── It deep\n"
        "    └── It shallow\n"
    )
    hir = translate(root, Config())
    assert [u.ident for u in hir.tests] == ["test_first", "test_inner_deep", "test_outer_shallow"]
    assert hir.test("test_inner_deep").helper_path == ("outer", "inner")
    assert [h.ident for h in hir.helpers] == ["outer", "inner"]


def test_expect_failure_and_annotations():
    root = Root(
        title="T",
        children=(Action("It should revert when paused", (ActionDescription("emits nothing"),)),),
    )
    unit = translate(root, Config(format_descriptions=True)).tests[0]
    assert unit.expect_failure
    assert [a.render() for a in unit.annotations] == ["It should revert when paused.", "Emits nothing."]


def test_injected_keywords_replace_defaults():
    root = Root(title="T", children=(Action("It should revert"), Action("It explodes")))
    hir = translate(root, Config(expect_failure_keywords=("explode",)))
    assert [u.expect_failure for u in hir.tests] == [False, True]


def test_skip_helpers_keeps_test_names():
    root = Root(title="T", children=(Condition("When x", (Action("It y"),)),))
    hir = translate(root, Config(skip_helpers=True))
    assert hir.helpers == ()
    assert hir.tests[0].ident == "test_x_y"
    assert hir.helper_calls(hir.tests[0]) == ()


@pytest.mark.parametrize(
    "tree",
    [
        Condition("When x"),
        Root(title="  "),
        Root(title="T", children=(ActionDescription("loose"),)),
        Root(title="T", children=(Action("It y", (Action("It z"),)),)),
        Root(title="T", children=(Condition(""),)),
    ],
)
def test_malformed_input_raises(tree):
    with pytest.raises(StructureError) as exc:
        translate(tree, Config())
    assert exc.value.diagnostic.code == "E_TRANSLATE_STRUCTURE_INVALID"
