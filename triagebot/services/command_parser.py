"""Slash command parsing for pull request comments."""

from triagebot.models.commands import CommandType, SlashCommand


_COMMANDS = {
    "/summarize": CommandType.SUMMARIZE,
    "/review": CommandType.REVIEW,
    "/labels": CommandType.LABELS,
    "/assign": CommandType.ASSIGN,
}

# Commands whose trailing tokens are meaningful
_TAKES_ARGS = (CommandType.LABELS, CommandType.ASSIGN)


def parse_command(body: str) -> SlashCommand:
    """
    Map a comment body to a slash command.
    
    The first whitespace-delimited token of the trimmed body selects the
    command; for ``/labels`` and ``/assign`` the remaining tokens become the
    arguments. Anything else is ``UNRECOGNIZED``.
    
    Example:
        >>> parse_command("/labels bug docs").args
        ['bug', 'docs']
    """
    tokens = (body or "").strip().split()
    if not tokens:
        return SlashCommand(command=CommandType.UNRECOGNIZED)

    command = _COMMANDS.get(tokens[0], CommandType.UNRECOGNIZED)
    args = tokens[1:] if command in _TAKES_ARGS else []
    return SlashCommand(command=command, args=args)
