"""Nord CLI — nord check, nord tokens, nord parse, nord fmt."""
import json
import sys
import os

from nord.lexer import Lexer, TokenType
from nord.parser import Parser
from nord.formatter import Formatter
from nord.ast_nodes import to_dict
from nord.config import get_config
from nord.errors import NordError

COMMANDS = ("check", "tokens", "parse", "fmt")


def usage(command: str = "<command>") -> None:
    print(f"Usage: nord {command} <file.nord>", file=sys.stderr)
    print(f"       nord {command} -e <source>", file=sys.stderr)
    print(f"Commands: {', '.join(COMMANDS)}", file=sys.stderr)


def run(command: str, source: str, label: str, config: dict) -> str:
    """Execute *command* on *source* and return the text to print."""
    silent = config["cli"]["silent"]

    if command == "tokens":
        tokens = Lexer(source).tokenize()
        return "\n".join(repr(t) for t in tokens if t.type != TokenType.EOF)

    if not silent:
        print("===== Tokens:", file=sys.stderr)
        for tok in Lexer(source).tokens():
            print(repr(tok), file=sys.stderr)
        print(file=sys.stderr)

    tree = Parser(Lexer(source).tokens()).parse()

    if not silent:
        print("===== AST:", file=sys.stderr)
        print(repr(tree), file=sys.stderr)
        print(file=sys.stderr)

    if command == "check":
        return f"OK: {label}"
    if command == "parse":
        return json.dumps(to_dict(tree), indent=config["cli"]["json_indent"])
    return Formatter(tree).format()


def main():
    if len(sys.argv) < 2:
        usage()
        sys.exit(1)

    command = sys.argv[1]

    if command not in COMMANDS:
        print(f"Unknown command: {command}", file=sys.stderr)
        sys.exit(1)

    if len(sys.argv) < 3:
        usage(command)
        sys.exit(1)

    try:
        config = get_config()
    except NordError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if sys.argv[2] == "-e":
        if len(sys.argv) < 4:
            usage(command)
            sys.exit(1)
        source = sys.argv[3]
        label = "<expr>"
    else:
        filepath = sys.argv[2]
        if not os.path.exists(filepath):
            print(f"Error: file not found: {filepath}", file=sys.stderr)
            sys.exit(1)
        with open(filepath) as f:
            source = f.read()
        label = filepath

    try:
        output = run(command, source, label, config)
    except NordError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(output)


if __name__ == "__main__":
    main()
