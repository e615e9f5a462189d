"""Line classifier that turns syslog lines into Telegram HTML messages."""

import re
from collections.abc import Callable
from dataclasses import dataclass

# Syslog shape: "Oct 29 01:09:44 hostname rest..."
LOG_LINE_PATTERN = re.compile(r"^([A-Za-z]{3}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2})\s+(\S+)\s+(.*)$")

HISTORY_MARKER = "HISTORY:"
KERNEL_MARKER = "kernel:"

HISTORY_PATTERN = re.compile(r"HISTORY:\s*PID=(\d+)\s+UID=(\d+)\s+(.+)")

DEFAULT_ICON = "📋"
HISTORY_ICON = "🧠"
KERNEL_ICON = "⚙️"

# Command icons: (prefix regex, icon), first match wins
COMMAND_ICONS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^(ssh|scp|sftp)"), "🔐"),  # remote access
    (re.compile(r"^su(\s|$)"), "👤"),  # privilege escalation
    (re.compile(r"^docker"), "🐳"),
    (re.compile(r"^(systemctl|rc-service|rc-update)"), "🧩"),
    (re.compile(r"^(rm|rmdir)\s+-.*r"), "🗑️"),  # destructive
    (re.compile(r"^(vim|nano|vi|cat|less|tail|head)"), "📝"),
    (re.compile(r"^(cd|ls|pwd|find)"), "📁"),
    (re.compile(r"^(apt|emerge|yum|dnf|pacman|eix)"), "📦"),
    (re.compile(r"^(screen|tmux)"), "🖥️"),
]

# Kernel sub-classes: (regex, icon, bold message)
KERNEL_ICONS: list[tuple[re.Pattern, str, bool]] = [
    (re.compile(r"(error|fail|panic|oops|bug)", re.IGNORECASE), "🚨⚙️", True),
    (re.compile(r"(oom|out of memory)", re.IGNORECASE), "💥", False),
    (re.compile(r"(eth|wlan|br-|veth|device|link)"), "🌐", False),
    (re.compile(r"(disk|mount|filesystem)"), "💾", False),
]

SSH_PATTERN = re.compile(r"(sshd|ssh).*(accepted|failed)", re.IGNORECASE)
SSH_ACCEPTED_PATTERN = re.compile(r"accepted", re.IGNORECASE)
CONTAINER_PATTERN = re.compile(r"(docker|container)", re.IGNORECASE)
ERROR_PATTERN = re.compile(r"(error|erro|fail|failed|critical|alert|emergency)", re.IGNORECASE)
WARNING_PATTERN = re.compile(r"(warn|warning)", re.IGNORECASE)
CRON_PATTERN = re.compile(r"(cron|CRON)")


@dataclass(frozen=True)
class LogComponents:
    """A syslog line split into its prefix fields and message body."""

    timestamp: str
    hostname: str
    rest: str


@dataclass(frozen=True)
class ClassifiedEvent:
    """Result of classifying a log line."""

    category: str  # Name of the rule that matched
    text: str  # Telegram HTML message


@dataclass(frozen=True)
class Rule:
    """A classification rule: predicate over the components plus its formatter."""

    name: str
    predicate: Callable[[LogComponents], bool]
    formatter: Callable[[LogComponents], str]


def html_escape(text: str) -> str:
    """Escape the characters Telegram's HTML parse mode treats as markup."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def parse_log_line(line: str) -> LogComponents:
    """Split a line into timestamp, hostname and body.

    Lines that don't look like syslog keep the whole text as the body.
    """
    match = LOG_LINE_PATTERN.match(line)
    if match is None:
        return LogComponents(timestamp="", hostname="", rest=line)
    return LogComponents(timestamp=match.group(1), hostname=match.group(2), rest=match.group(3))


def _header(icon: str, comp: LogComponents) -> str:
    return f"{icon} <b>{comp.timestamp}</b> <code>{comp.hostname}</code>"


def _two_line(icon: str, comp: LogComponents, body: str) -> str:
    return f"{_header(icon, comp)}\n└ {body}"


def command_icon(command: str) -> str:
    """Pick the icon for a shell command, falling back to the history icon."""
    for pattern, icon in COMMAND_ICONS:
        if pattern.search(command):
            return icon
    return HISTORY_ICON


def format_history(comp: LogComponents) -> str:
    match = HISTORY_PATTERN.search(comp.rest)
    if match is None:
        return _two_line(HISTORY_ICON, comp, comp.rest)

    pid, uid, command = match.group(1), match.group(2), match.group(3)
    banner = "<b><u>ROOT</u></b>" if uid == "0" else "👤 User"
    return (
        f"{_header(command_icon(command), comp)}\n"
        f"├ {banner} PID:<code>{pid}</code> UID:<code>{uid}</code>\n"
        f"└ <code>{command}</code>"
    )


def format_kernel(comp: LogComponents) -> str:
    message = comp.rest[comp.rest.find(KERNEL_MARKER) + len(KERNEL_MARKER) :].lstrip()

    icon = KERNEL_ICON
    for pattern, kernel_icon, bold in KERNEL_ICONS:
        if pattern.search(message):
            icon = kernel_icon
            if bold:
                message = f"<b>{message}</b>"
            break

    return _two_line(icon, comp, f"<i>{message}</i>")


def format_ssh(comp: LogComponents) -> str:
    icon = "✅🔐" if SSH_ACCEPTED_PATTERN.search(comp.rest) else "❌🔐"
    return _two_line(icon, comp, f"<u>{comp.rest}</u>")


def _styled(icon: str, open_tags: str, close_tags: str) -> Callable[[LogComponents], str]:
    def formatter(comp: LogComponents) -> str:
        return _two_line(icon, comp, f"{open_tags}{comp.rest}{close_tags}")

    return formatter


def _searches(pattern: re.Pattern) -> Callable[[LogComponents], bool]:
    return lambda comp: pattern.search(comp.rest) is not None


# Priority order matters: first matching rule wins
RULES: list[Rule] = [
    Rule("history", lambda comp: HISTORY_MARKER in comp.rest, format_history),
    Rule("kernel", lambda comp: KERNEL_MARKER in comp.rest, format_kernel),
    Rule("ssh", _searches(SSH_PATTERN), format_ssh),
    Rule("container", _searches(CONTAINER_PATTERN), _styled("🐳", "<i>", "</i>")),
    Rule("error", _searches(ERROR_PATTERN), _styled("🚨", "<b><u>", "</u></b>")),
    Rule("warning", _searches(WARNING_PATTERN), _styled("⚠️", "<i>", "</i>")),
    Rule("cron", _searches(CRON_PATTERN), _styled("⏰", "", "")),
]

DEFAULT_RULE = Rule("default", lambda comp: True, _styled(DEFAULT_ICON, "", ""))


def classify_event(line: str, rules: list[Rule] | None = None) -> ClassifiedEvent:
    """Classify a raw log line and render it as Telegram HTML.

    The line is escaped before anything else so that only the markup added
    here reaches Telegram unescaped.

    Args:
        line: Raw log line (no trailing newline)
        rules: Rule list to evaluate in order (default: RULES)

    Returns:
        The matching rule's name and the rendered message
    """
    comp = parse_log_line(html_escape(line))
    for rule in rules if rules is not None else RULES:
        if rule.predicate(comp):
            return ClassifiedEvent(category=rule.name, text=rule.formatter(comp))
    return ClassifiedEvent(category=DEFAULT_RULE.name, text=DEFAULT_RULE.formatter(comp))


def classify(line: str) -> str:
    """Return the decorated message for a raw log line."""
    return classify_event(line).text
