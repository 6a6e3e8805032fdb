import sys

from rich.pretty import pprint

from cmdline import *

__prog__ = "add"

args = Args([
    Flag("version", "v", "Display version information"),
    Flag("please", "p", "Ask nicely", required=True),
    Option("number-a", "a", "First number", required=True),
    Option("number-b", "b", "Second number", (), "4"),
    Option("operation", "o", "Operation to perform", ("add", "subtract"), "add"),
    Flag("debug", "d", "Show the parsed declarations and values"),
])


def main():
    if not args.parse():
        args.print_usage()
        return 1

    if args.is_set("version"):
        print("%s %s" % (args.prog, __version__))
        return 0

    if args.is_set("debug"):
        pprint(args)
        pprint(dict(args.values))

    try:
        a = args.get_as_int("number-a")
        b = args.get_as_int("number-b")
    except ConversionError as exception:
        print(exception, file=sys.stderr)
        return 1

    print(a + b if args.get("operation") == "add" else a - b)
    return 0


if __name__ == '__main__':
    sys.exit(main())
