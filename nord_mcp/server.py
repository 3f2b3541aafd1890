"""Nord MCP Server — exposes Nord front-end tools via MCP protocol."""

import json
import os

from mcp.server.fastmcp import FastMCP

from nord.lexer import Lexer
from nord.parser import Parser
from nord.formatter import Formatter
from nord.ast_nodes import to_dict
from nord.config import get_config
from nord.errors import NordError

mcp = FastMCP("nord")


def _extension() -> str:
    return get_config()["files"]["extension"]


def _read_source(filepath: str) -> tuple[str | None, str | None]:
    """Return ``(source, None)`` or ``(None, error message)``."""
    try:
        with open(filepath) as f:
            return f.read(), None
    except FileNotFoundError:
        return None, f"Error: file not found: {filepath}"
    except OSError as e:
        return None, f"Error reading file: {e}"


@mcp.tool()
def nord_write(filepath: str, source: str) -> str:
    """Write Nord source code to a file. Use this to create new .nord programs.

    Args:
        filepath: Path to the .nord file to create (e.g. "my_program.nord")
        source: The Nord source code to write
    """
    return write_nord_file(filepath, source)


def write_nord_file(filepath: str, source: str) -> str:
    """Core logic for writing a nord file — testable without MCP."""
    extension = _extension()
    if not filepath.endswith(extension):
        return f"Error: filepath must end with {extension}"
    try:
        os.makedirs(os.path.dirname(filepath) if os.path.dirname(filepath) else ".", exist_ok=True)
        with open(filepath, "w") as f:
            f.write(source)
        return f"Saved: {filepath}"
    except OSError as e:
        return f"Error writing file: {e}"


@mcp.tool()
def nord_check(filepath: str) -> str:
    """Check Nord syntax. Validates that the file holds one well-formed expression.

    Args:
        filepath: Path to the .nord file to check
    """
    return check_nord_file(filepath)


def check_nord_file(filepath: str) -> str:
    """Core logic for checking a nord file — testable without MCP."""
    source, error = _read_source(filepath)
    if error:
        return error

    try:
        Parser(Lexer(source).tokens()).parse()
        return f"OK: {filepath}"
    except NordError as e:
        return f"Error: {e}"


@mcp.tool()
def nord_parse(filepath: str) -> str:
    """Parse a Nord file and return its syntax tree as JSON.

    Args:
        filepath: Path to the .nord file to parse
    """
    return parse_nord_file(filepath)


def parse_nord_file(filepath: str) -> str:
    """Core logic for parsing a nord file — testable without MCP."""
    source, error = _read_source(filepath)
    if error:
        return error

    try:
        tree = Parser(Lexer(source).tokens()).parse()
    except NordError as e:
        return f"Error: {e}"
    return json.dumps(to_dict(tree), indent=get_config()["cli"]["json_indent"])


@mcp.tool()
def nord_format(filepath: str) -> str:
    """Return the canonical formatting of a Nord file.

    Args:
        filepath: Path to the .nord file to format
    """
    return format_nord_file(filepath)


def format_nord_file(filepath: str) -> str:
    """Core logic for formatting a nord file — testable without MCP."""
    source, error = _read_source(filepath)
    if error:
        return error

    try:
        tree = Parser(Lexer(source).tokens()).parse()
    except NordError as e:
        return f"Error: {e}"
    return Formatter(tree).format()


NORD_LANGUAGE_GUIDE = """\
# Writing Nord Programs

Nord is a small expression-oriented scripting language. A program is a
single expression; use `block ... end` to sequence several.
Use the nord_write tool to create .nord files, then nord_check or nord_parse.

## Literals
```
42
true
"text with \\"escapes\\"\\n"
name
```

## Bindings and assignment
```
let total = 1 + 2 * 3
total = total - 1
```
Assignment is left-associative: `a = b = c` means `(a = b) = c`.

## Arrays and objects
```
[1, 2, 3]
#{name: "nord", size: 3}
```
No trailing commas.

## Functions (zero or one parameter)
```
fn(x) x * 2
fn() block let y = 1; y + 1 end
```

## Conditionals
```
if x > 0 then "positive" else "not positive" end
if ready then go() end
```
Branches are `;`-separated sequences and may be empty.

## Blocks
```
block
  let x = 10;
  let y = x * 2;
  y
end
```

## Calls, indexing, members
```
f(1)[0].x
obj.method(arg).field[2]
```

## Operators, loosest to tightest
`=`, `||`, `&&`, `== != < <= > >=`, `+ -`, `* / %`, unary `- !`,
postfix `() [] .`

## Important Rules
1. `if`, `let`, `fn`, `block`, arrays and objects must be parenthesized
   when used as an operand: `(fn(x) x)(1)`, `([1, 2])[0]`
2. Calls take at most one argument
3. Strings use double quotes only
4. Files must end with .nord extension
"""


@mcp.prompt()
def nord_guide() -> str:
    """Complete guide to writing Nord programs. Use this when writing .nord files."""
    return NORD_LANGUAGE_GUIDE


if __name__ == "__main__":
    mcp.run(transport="stdio")
