# ============================================================================
# SHELL COMMAND LEXER
# ============================================================================

from __future__ import annotations

import re

from pygments.lexer import RegexLexer, bygroups, include
from pygments.token import (
    Comment,
    Error,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
    _TokenType,
)
from rich.style import Style
from rich.syntax import Syntax, SyntaxTheme
from rich.text import Text as RichText

# Custom token types so Rich and Pygments agree on them
Name.Argument = Token.Name.Argument
Name.Variable.Magic = Token.Name.Variable.Magic
Keyword.Type = Token.Keyword.Type


class ShellLexer(RegexLexer):
    """
    Lexer for single recorded shell commands (zsh or bash), as stored in history.
    ```python
    text = highlight_command("git commit -m 'wip' && make test")
    ```
    """

    name = "Shell command"
    aliases = ["shell-command"]
    filenames = []

    flags = re.MULTILINE | re.DOTALL

    tokens = {
        "_base": [
            (r"\\.", String.Escape),
            # Arithmetic before command substitution: both open with "$("
            (r"\$\(\(", Operator, "arithmetic"),
            (r"\$\(", String.Interpol, "substitution"),
            (r"`", String.Backtick, "backtick"),
            (r"\$\{", Name.Variable.Magic, "parameter"),
            (r"\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r"'[^']*'", String.Single),
            (r'"', String.Double, "string_double"),
        ],
        "root": [
            (r"\s+", Text),
            (r"#.*?$", Comment.Single),
            (r"(<<<|<<-?|>>?|<&|>&)?[0-9]*[<>]", Operator),
            (r"\|\|?|&&|&", Operator),
            (r"[;()\[\]{}]", Punctuation),
            (r"\b(if|fi|else|elif|then|for|in|while|until|do|done|case|esac|function|select|time)\b",
             Keyword.Reserved),
            (r"\b(echo|printf|cd|pwd|export|unset|source|exit|return|alias|eval|exec|sudo|env)\b",
             Name.Builtin, "arguments"),
            # FOO=bar before the command word
            (r"([a-zA-Z_][a-zA-Z0-9_]*)(=)", bygroups(Name.Variable, Operator), "assignment"),
            (r"\b[0-9]+\b", Number.Integer),
            include("_base"),
            (r"[a-zA-Z0-9_./~+:@%-]+", Name.Function, "arguments"),
        ],
        "assignment": [
            (r"\s+", Text, "#pop"),
            include("_base"),
            (r"[^\s;&|'\"$`\\]+", String),
        ],
        "arguments": [
            (r"\n", Text, "#pop"),
            (r"\|\|?|&&", Operator, "#pop"),
            (r"[;&]", Punctuation, "#pop"),
            # Leave ")" for the enclosing substitution to close
            (r"(?=\))", Text, "#pop"),
            (r"\s+#.*?$", Comment.Single),
            (r"\s+", Text),
            (r"(<<<|<<-?|>>?|<&|>&)?[0-9]*[<>]", Operator),
            (r"(?:--?|\+)[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"=", Operator),
            (r"\b[0-9]+\b(?![\w./-])", Number.Integer),
            include("_base"),
            (r"[^=\s;&|(){}<>'\"$`\\]+", Name.Argument),
            (r"[({}]", Punctuation),
        ],
        "string_double": [
            (r'"', String.Double, "#pop"),
            (r'\\(["$`\\])', String.Escape),
            (r"\$\(", String.Interpol, "substitution"),
            (r"\$\{", Name.Variable.Magic, "parameter"),
            (r"\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r'[^"\\$]+', String.Double),
            (r"[\\$]", String.Double),
        ],
        "substitution": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
        "backtick": [
            (r"`", String.Backtick, "#pop"),
            (r"[^`]+", String.Backtick),
        ],
        "arithmetic": [
            (r"\)\)", Operator, "#pop"),
            (r"[-+*/%&|<>!=^]+", Operator.Word),
            (r"\b[0-9]+\b", Number.Integer),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable),
            (r"\s+", Text),
            (r".", Text),
        ],
        "parameter": [
            (r"\}", Name.Variable.Magic, "#pop"),
            (r"\$\{", Name.Variable.Magic, "#push"),
            (r"\$\(", String.Interpol, "substitution"),
            # zsh flags such as ${(f)lines}
            (r"(\([#@=a-zA-Z:?^]+\))([a-zA-Z_][a-zA-Z0-9_]*)", bygroups(Keyword.Type, Name.Variable)),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable),
            (r"[#%/:|~^]+", Operator),
            (r"[^}$]+", Text),
            (r"\$", Text),
        ],
    }


class CommandTheme(SyntaxTheme):
    """One Dark colours, matching the rest of the browser's palette."""

    _BACKGROUND = "#282c34"
    _RED = "#e06c75"
    _GREEN = "#98c379"
    _YELLOW = "#e5c07b"
    _ORANGE = "#d19a66"
    _PURPLE = "#c678dd"
    _CYAN = "#56b6c2"
    _BLUE = "#61afef"
    _WHITE = "#abb2bf"
    _GRAY = "#5c6370"

    background_color = _BACKGROUND
    default_style = Style(color=_WHITE)

    styles = {
        Name.Function: Style(color=_GREEN, bold=True),  # git, make
        Name.Builtin: Style(color=_CYAN, italic=True),  # cd, export
        Name.Attribute: Style(color=_ORANGE),  # --long, -l
        Name.Argument: Style(color=_WHITE),
        Name.Variable: Style(color=_PURPLE),
        Name.Variable.Magic: Style(color=_PURPLE, bold=True),  # ${PATH}
        Keyword: Style(color=_RED, bold=True),
        Keyword.Type: Style(color=_CYAN, italic=True),  # (f) in ${(f)x}
        Number: Style(color=_ORANGE),
        Operator: Style(color=_RED),
        Punctuation: Style(color=_WHITE),
        String: Style(color=_YELLOW),
        String.Escape: Style(color=_PURPLE),
        String.Interpol: Style(color=_BLUE, bold=True),
        String.Backtick: Style(color=_BLUE),
        Comment: Style(color=_GRAY, italic=True),
        Error: Style(color=_RED, bold=True),
        Text: Style(color=_WHITE),
    }

    @classmethod
    def get_style_for_token(cls, t: _TokenType) -> Style:
        # Walk up the token hierarchy: String.Single falls back to String
        while t not in cls.styles and t.parent is not None:
            t = t.parent
        return cls.styles.get(t, cls.default_style)

    @classmethod
    def get_background_style(cls) -> Style:
        return Style()


_LEXER = ShellLexer()
_THEME = CommandTheme()


def highlight_command(command_text: str) -> RichText:
    """→ Command text as a styled rich Text, without a background"""
    syntax = Syntax(command_text, _LEXER, theme=_THEME, background_color="default")
    text = syntax.highlight(command_text)
    # Pygments terminates its token stream with a newline the command never had
    if text.plain.endswith("\n") and not command_text.endswith("\n"):
        text.right_crop(1)
    return text
