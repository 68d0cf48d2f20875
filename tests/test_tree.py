import pytest

from treetest_builder.errors import SpecParseError
from treetest_builder.tree import Action, ActionDescription, Condition, parse_tree

TREE = """\
HashPairTest
├── It should never revert.
├── When first arg is smaller
│   └── It should hash a then b.
│       └── Because it is sorted.
// a comment line
└── Given first arg is bigger
    └── It should hash b then a.
"""


def test_parse_tree_builds_nodes():
    root = parse_tree(TREE)
    assert root.title == "HashPairTest"
    assert [type(c) for c in root.children] == [Action, Condition, Condition]

    smaller = root.children[1]
    assert smaller.title == "When first arg is smaller"
    action = smaller.children[0]
    assert isinstance(action, Action)
    assert action.children == (ActionDescription(text="Because it is sorted.", span=action.children[0].span),)
    assert action.span.line == 4


def test_parse_tree_rejects_bad_keyword():
    with pytest.raises(SpecParseError) as exc:
        parse_tree("Root\n└── Returns zero\n")
    assert exc.value.diagnostic.code == "E_TREE_TITLE_KEYWORD"
    assert exc.value.diagnostic.path == "line 2"


@pytest.mark.parametrize(
    "text, code",
    [
        ("", "E_TREE_EMPTY"),
        ("\n// only comments\n", "E_TREE_EMPTY"),
        ("├── It x\n", "E_TREE_ROOT_MISSING"),
        ("Root\n  ├── It x\n", "E_TREE_INDENT_INVALID"),
        ("Root\n│   │   └── It x\n", "E_TREE_DEPTH_JUMP"),
        ("Root\n└── \n", "E_TREE_TITLE_EMPTY"),
        ("Root\nOther\n", "E_TREE_MULTIPLE_ROOTS"),
        ("Root\n└── It x\n    └── note\n        └── deeper\n", "E_TREE_DESCRIPTION_NESTED"),
    ],
)
def test_parse_tree_errors(text, code):
    with pytest.raises(SpecParseError) as exc:
        parse_tree(text)
    assert exc.value.diagnostic.code == code
