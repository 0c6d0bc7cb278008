"""
Tests for command template expansion and tokenizing.
"""

import pytest

from filecron.events import IN_CREATE, IN_ISDIR, IN_CLOSE_WRITE
from filecron.expander import CommandExpander, CommandExpansionError
from filecron.tokenizer import tokenize


def expand(template, path='/tmp', name='f.txt', mask=IN_CREATE):
    return CommandExpander.expand(template, path, name, mask)


class TestExpand:
    """Tests for CommandExpander.expand"""

    def test_template_without_marker_is_unchanged(self):
        assert expand("rsync -a /src /dst") == "rsync -a /src /dst"
        assert expand("") == ""

    def test_escaped_marker(self):
        assert expand("a$$b") == "a$b"

    def test_path_and_name(self):
        assert expand("run $@/$# now", path="/tmp", name="f.txt") == "run /tmp/f.txt now"

    def test_numeric_mask(self):
        assert expand("mask=$&", mask=256) == "mask=256"

    def test_symbolic_mask(self):
        assert expand("types=$%", mask=IN_CREATE | IN_ISDIR) == "types=IN_CREATE,IN_ISDIR"

    def test_symbolic_mask_single_event(self):
        assert expand("$%", mask=IN_CLOSE_WRITE) == "IN_CLOSE_WRITE"

    def test_trailing_marker_kept(self):
        assert expand("x$") == "x$"
        assert expand("$") == "$"

    def test_unknown_token_drops_marker_only(self):
        assert expand("a$zb") == "azb"
        assert expand("cost $5") == "cost 5"

    def test_unknown_token_followed_by_known_token(self):
        # '$' before '$@' is dropped, then '$@' expands
        assert expand("$x$@", path="/p") == "x/p"

    def test_marker_sequences_in_a_row(self):
        assert expand("$$$$") == "$$"
        assert expand("$$$") == "$$"

    def test_empty_name(self):
        assert expand("touch $@/$#", path="/watched/file", name="") == "touch /watched/file/"

    def test_mask_rendered_unsigned(self):
        assert expand("$&", mask=0x80000000) == "2147483648"

    def test_path_containing_marker_not_rescanned(self):
        assert expand("cat $@", path="/tmp/$#") == "cat /tmp/$#"


class TestPrepareArgs:
    """Tests for CommandExpander.prepare_args"""

    def test_simple_command(self):
        assert CommandExpander.prepare_args("echo hello world") == ["echo", "hello", "world"]

    def test_empty_command_fails(self):
        with pytest.raises(CommandExpansionError):
            CommandExpander.prepare_args("")

    def test_only_spaces_fails(self):
        with pytest.raises(CommandExpansionError):
            CommandExpander.prepare_args("   ")

    def test_escaped_space_kept_in_argument(self):
        args = CommandExpander.prepare_args(expand("cp $@/$# /backup", path="/my\\ dir", name="a"))
        assert args == ["cp", "/my dir/a", "/backup"]


class TestTokenize:
    """Tests for the tokenizer"""

    def test_split_on_spaces(self):
        assert tokenize("a b c") == ["a", "b", "c"]

    def test_runs_of_spaces(self):
        assert tokenize("  a   b  ") == ["a", "b"]

    def test_empty_input(self):
        assert tokenize("") == []
        assert tokenize("    ") == []

    def test_escaped_delimiter(self):
        assert tokenize("a\\ b c") == ["a b", "c"]

    def test_escaped_escape(self):
        assert tokenize("a\\\\ b") == ["a\\", "b"]

    def test_escape_before_ordinary_char_is_removed(self):
        assert tokenize("\\x") == ["x"]

    def test_trailing_escape_kept(self):
        assert tokenize("a\\") == ["a\\"]

    def test_escaped_space_alone_is_a_word(self):
        assert tokenize("\\ ") == [" "]

    def test_custom_delimiter(self):
        assert tokenize("a,b,,c", delimiter=',') == ["a", "b", "c"]
