from treetest_builder.naming import expects_failure, format_description, slug, unit_name


def test_slug_strips_one_keyword():
    assert slug("When the caller is the owner") == "the_caller_is_the_owner"
    assert slug("given  it is set") == "it_is_set"
    assert slug("It when") == "when"


def test_slug_normalizes_case_and_hyphens():
    assert slug("When X") == slug("when x") == "x"
    assert slug("It re-enters") == "re_enters"
    assert slug("It should match `keccak256(a,b)`.") == "should_match_keccak256ab"


def test_slug_keyword_needs_trailing_space():
    assert slug("Whenever") == "whenever"
    assert slug("itemized") == "itemized"


def test_unit_name_uses_last_helper():
    assert unit_name("does_y", ()) == "test_does_y"
    assert unit_name("does_y", ("a", "b")) == "test_b_does_y"


def test_expects_failure_is_substring_match():
    keywords = ("revert", "fail")
    assert expects_failure("It should REVERT when paused", keywords)
    assert expects_failure("It reports a failure", keywords)
    assert not expects_failure("It returns zero", keywords)


def test_format_description():
    assert format_description("  returns zero ") == "Returns zero."
    assert format_description("done!") == "Done!"
    assert format_description("why?") == "Why?"
    assert format_description("") == ""
