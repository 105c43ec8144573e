"""
Directive Parser
================
Parses `cauth` rule blocks into Rule objects.

Syntax:
    cauth /shorthand
    
    cauth {
        path /admin
        endpoint http://auth.local/check
        except /admin/public
        header Authorization
        header X-Trace optional
        query token
        query lang optional
        header_or_query X-Api-Key api_key
        allowroot
        redirect "https://login.local/?next={uri_escaped}"
        passthrough
        strip_header
    }

'#' starts a comment. Double-quoted strings are single tokens.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import Rule

RULE_DIRECTIVE = "cauth"

FIELD_PLURALS = {
    "header": "headers",
    "query": "queries",
}

FLAG_DIRECTIVES = {
    "allowroot": "allow_root",
    "passthrough": "passthrough",
    "strip_header": "strip_header",
}


@dataclass
class Token:
    text: str
    line: int
    quoted: bool = False

    @property
    def is_open(self) -> bool:
        return self.text == "{" and not self.quoted

    @property
    def is_close(self) -> bool:
        return self.text == "}" and not self.quoted


@dataclass
class _RuleBuilder:
    line: int
    fields: Dict[str, Any] = field(default_factory=dict)

    def append(self, key: str, value: Any) -> None:
        self.fields.setdefault(key, []).append(value)


def tokenize(text: str, source: Optional[str] = None) -> List[List[Token]]:
    """
    Split configuration text into lines of tokens.
    
    Returns:
        List of non-empty token lines
    """
    lines: List[List[Token]] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        tokens: List[Token] = []
        i = 0
        while i < len(raw):
            ch = raw[i]
            if ch.isspace():
                i += 1
                continue
            if ch == "#":
                break
            if ch == '"':
                i += 1
                buf = []
                while i < len(raw) and raw[i] != '"':
                    if raw[i] == "\\" and i + 1 < len(raw):
                        i += 1
                    buf.append(raw[i])
                    i += 1
                if i >= len(raw):
                    raise ConfigurationError("unterminated quoted string", line=lineno, source=source)
                i += 1
                tokens.append(Token("".join(buf), lineno, quoted=True))
                continue
            start = i
            while i < len(raw) and not raw[i].isspace() and raw[i] != '"':
                i += 1
            tokens.append(Token(raw[start:i], lineno))
        if tokens:
            lines.append(tokens)
    return lines


def _arg_error(token: Token, message: str, source: Optional[str]) -> ConfigurationError:
    return ConfigurationError(f"{token.text}: {message}", line=token.line, source=source)


def _apply_directive(builder: _RuleBuilder, tokens: List[Token], source: Optional[str]) -> None:
    """Apply one block line to the rule being built."""
    head, args = tokens[0], [t.text for t in tokens[1:]]
    name = head.text

    if name in ("path", "endpoint", "redirect"):
        if len(args) != 1:
            raise _arg_error(head, "expected exactly one value", source)
        if name in builder.fields:
            raise _arg_error(head, "may only be given once per rule", source)
        builder.fields[name] = args[0]
    elif name == "except":
        if len(args) != 1:
            raise _arg_error(head, "only one path per declaration", source)
        builder.append("excepted_paths", args[0])
    elif name in ("header", "query"):
        if len(args) == 1:
            builder.append(f"required_{FIELD_PLURALS[name]}", args[0])
        elif len(args) == 2 and args[1] == "optional":
            builder.append(f"optional_{FIELD_PLURALS[name]}", args[0])
        else:
            raise _arg_error(head, "expected a name and an optional 'optional' flag", source)
    elif name == "header_or_query":
        if len(args) != 2:
            raise _arg_error(head, "expected a header name and a query name", source)
        builder.append("header_or_query", {"header": args[0], "query": args[1]})
    elif name in FLAG_DIRECTIVES:
        if args:
            raise _arg_error(head, "takes no arguments", source)
        builder.fields[FLAG_DIRECTIVES[name]] = True
    else:
        raise _arg_error(head, "unknown directive", source)


def _build(builder: _RuleBuilder, source: Optional[str]) -> Rule:
    if not builder.fields.get("path"):
        raise ConfigurationError("Each rule must have a path", line=builder.line, source=source)
    try:
        return Rule(**builder.fields)
    except ValidationError as e:
        raise ConfigurationError.from_validation_error(e, line=builder.line, source=source)


def _iter_rules(lines: List[List[Token]], source: Optional[str]) -> Iterator[Rule]:
    index = 0
    while index < len(lines):
        tokens = lines[index]
        head = tokens[0]
        index += 1

        if head.text != RULE_DIRECTIVE:
            raise _arg_error(head, "unknown directive", source)

        args = tokens[1:]
        opens_block = bool(args) and args[-1].is_open
        if opens_block:
            args = args[:-1]

        if not opens_block:
            if len(args) > 1:
                raise _arg_error(head, "expected at most one argument", source)
            builder = _RuleBuilder(line=head.line)
            if args:
                builder.fields["path"] = args[0].text
            yield _build(builder, source)
            continue

        if args:
            # 'cauth /path {' is not allowed: the shorthand takes no block
            raise _arg_error(head, "a path argument cannot be combined with a block", source)

        builder = _RuleBuilder(line=head.line)
        closed = False
        while index < len(lines):
            block_line = lines[index]
            index += 1
            if block_line[0].is_close:
                if len(block_line) > 1:
                    raise _arg_error(block_line[1], "unexpected token after '}'", source)
                closed = True
                break
            if any(t.is_open or t.is_close for t in block_line):
                raise _arg_error(block_line[0], "nested or misplaced brace", source)
            _apply_directive(builder, block_line, source)

        if not closed:
            raise ConfigurationError("unexpected end of input, missing '}'", line=head.line, source=source)
        yield _build(builder, source)


def parse_directives(text: str, source: Optional[str] = None) -> List[Rule]:
    """
    Parse rule blocks.
    
    Args:
        text: Configuration text
        source: Name used in error messages (e.g. file path)
        
    Returns:
        Rules in declaration order
        
    Raises:
        ConfigurationError: On any malformed or incomplete block
    """
    return list(_iter_rules(tokenize(text, source), source))
