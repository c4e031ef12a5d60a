"""Language-aware line rules for the pattern detector.

Rules are grouped in three families. Within a family the first matching rule
wins, so a single added line yields at most one finding per family. Order
inside each tuple is therefore significant: more specific rules go first.

Messages may use two placeholders: ``{match}`` (the matched text) and
``{length}`` (the line length).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final

from reviewbot.models import Category, Severity


class RuleFamily(str, Enum):
    SECURITY = "security"
    PERFORMANCE = "performance"
    QUALITY = "quality"

    def __str__(self) -> str:
        return self.value


FAMILY_OUTCOME: Final[dict[RuleFamily, tuple[Severity, Category]]] = {
    RuleFamily.SECURITY: (Severity.ERROR, Category.SECURITY),
    RuleFamily.PERFORMANCE: (Severity.WARNING, Category.PERFORMANCE),
    RuleFamily.QUALITY: (Severity.INFO, Category.STYLE),
}

MAX_LINE_LENGTH: Final[int] = 120

# ── Language groups ──────────────────────────────────────────────────────────
PYTHON = frozenset({".py"})
JAVASCRIPT = frozenset({".js", ".jsx", ".ts", ".tsx"})
REACT = frozenset({".jsx", ".tsx"})
PHP = frozenset({".php"})
RUBY = frozenset({".rb"})
JAVA = frozenset({".java"})
JVM = frozenset({".java", ".kt", ".scala"})
SHELL = frozenset({".sh", ".bash", ".ps1"})
SQL = frozenset({".sql"})
MARKUP = frozenset({".html"})
C_FAMILY = frozenset({".c", ".cpp", ".cs", ".go", ".rs", ".swift", ".kt", ".scala"})

CODE = PYTHON | JAVASCRIPT | PHP | RUBY | JAVA | C_FAMILY | SHELL | frozenset({".r"})
CONFIG = frozenset({".yaml", ".yml", ".json", ".xml", ".tf", ".hcl", ".dockerfile"})
HASH_COMMENTS = PYTHON | RUBY | SHELL | frozenset({".r"})
SLASH_COMMENTS = JAVASCRIPT | JAVA | PHP | C_FAMILY


@dataclass(frozen=True)
class Rule:
    name: str
    family: RuleFamily
    pattern: re.Pattern[str]
    message: str
    extensions: frozenset[str] | None = None

    def applies_to(self, extension: str) -> bool:
        return self.extensions is None or extension in self.extensions

    def match(self, content: str) -> str | None:
        """Return the rendered message when ``content`` triggers this rule."""

        found = self.pattern.search(content)
        if not found:
            return None
        return (
            self.message
            .replace("{match}", found.group(0).strip().rstrip("(").strip())
            .replace("{length}", str(len(content)))
        )


def _rule(
    name: str,
    family: RuleFamily,
    pattern: str,
    message: str,
    extensions: frozenset[str] | None = None,
    flags: int = 0,
) -> Rule:
    return Rule(name, family, re.compile(pattern, flags), message, extensions)


_S = RuleFamily.SECURITY
_P = RuleFamily.PERFORMANCE
_Q = RuleFamily.QUALITY

SECURITY_RULES: Final[tuple[Rule, ...]] = (
    _rule(
        "eval_call", _S, r"(?<![\w.])eval\s*\(",
        "🚨 **Security Risk**: Use of `eval()` can lead to code injection vulnerabilities. Consider safer alternatives.",
        PYTHON | JAVASCRIPT | PHP | RUBY,
    ),
    _rule(
        "exec_call", _S, r"(?<![\w.])exec\s*\(",
        "🚨 **Security Risk**: Use of `exec()` can execute arbitrary code. Validate input thoroughly or use safer alternatives.",
        PYTHON | PHP,
    ),
    _rule(
        "hardcoded_credential", _S,
        r"""(?:password|passwd|secret|api_?key|token)\s*[:=]\s*["'][A-Za-z0-9+/=_\-]{8,}["']""",
        "🔑 **Security**: Possible hardcoded credential detected. Use environment variables or secure credential storage.",
        CODE | CONFIG, re.IGNORECASE,
    ),
    _rule(
        "sql_concatenation", _S,
        r"""\b(?:SELECT|INSERT|UPDATE|DELETE)\b[^"'\n]*["']\s*(?:\+|\.\s*\$)""",
        "💉 **Security**: Potential SQL injection vulnerability. Use parameterized queries instead of string concatenation.",
        CODE, re.IGNORECASE,
    ),
    _rule(
        "sql_format_string", _S,
        r"""\b(?:execute|executemany|raw)\s*\(\s*f["']|\b(?:SELECT|INSERT|UPDATE|DELETE)\b[^"'\n]*["']\s*(?:%\s*[\w(]|\.format\s*\()""",
        "💉 **Security**: SQL query built with string formatting. Use parameterized queries instead.",
        PYTHON, re.IGNORECASE,
    ),
    _rule(
        "sql_template_literal", _S, r"\b(?:query|execute)\s*\(\s*`[^`]*\$\{",
        "💉 **Security**: SQL query built from a template literal. Use parameterized queries or placeholders.",
        JAVASCRIPT,
    ),
    _rule(
        "inner_html_assignment", _S, r"\.(?:inner|outer)HTML\s*=(?!=)",
        "🌐 **Security**: Setting innerHTML with user data can lead to XSS. Consider using textContent or sanitization.",
        JAVASCRIPT | MARKUP,
    ),
    _rule(
        "document_write", _S, r"\bdocument\.write(?:ln)?\s*\(",
        "📝 **Security**: document.write() can be dangerous with user input. Use safer DOM manipulation methods.",
        JAVASCRIPT | MARKUP,
    ),
    _rule(
        "dangerously_set_inner_html", _S, r"\bdangerouslySetInnerHTML\b",
        "🌐 **Security**: `dangerouslySetInnerHTML` bypasses React's escaping. Sanitize the HTML or render text instead.",
        REACT | JAVASCRIPT,
    ),
    _rule(
        "pickle_load", _S, r"\b(?:c?[Pp]ickle|dill)\.loads?\s*\(",
        "🥒 **Security**: pickle.load() can execute arbitrary code. Use safer serialization formats like JSON.",
        PYTHON,
    ),
    _rule(
        "yaml_unsafe_load", _S,
        r"\byaml\.unsafe_load\s*\(|\byaml\.load\s*\((?!.*Loader\s*=\s*(?:yaml\.)?C?SafeLoader)",
        "🥒 **Security**: yaml.load() without SafeLoader can construct arbitrary objects. Use yaml.safe_load().",
        PYTHON,
    ),
    _rule(
        "marshal_load", _S, r"\bmarshal\.loads?\s*\(",
        "🥒 **Security**: marshal is not safe against untrusted data. Use JSON or another safe format.",
        PYTHON,
    ),
    _rule(
        "php_unserialize", _S, r"(?<![\w>:])unserialize\s*\(",
        "🥒 **Security**: unserialize() on untrusted input allows object injection. Use json_decode() instead.",
        PHP,
    ),
    _rule(
        "ruby_unsafe_load", _S, r"\b(?:Marshal|YAML)\.load\b",
        "🥒 **Security**: Marshal.load/YAML.load can instantiate arbitrary objects. Use JSON or YAML.safe_load.",
        RUBY,
    ),
    _rule(
        "java_object_input_stream", _S, r"\bnew\s+ObjectInputStream\s*\(",
        "🥒 **Security**: Java deserialization of untrusted data can lead to remote code execution. Validate or avoid it.",
        JAVA,
    ),
    _rule(
        "subprocess_shell", _S, r"\bshell\s*=\s*True\b",
        "🐚 **Security**: subprocess with shell=True can be dangerous. Use shell=False with argument lists.",
        PYTHON,
    ),
    _rule(
        "os_system", _S, r"\bos\.(?:system|popen)\s*\(",
        "🐚 **Security**: os.system()/os.popen() run through the shell. Use subprocess with an argument list.",
        PYTHON,
    ),
    _rule(
        "child_process_exec", _S, r"\bchild_process\.exec(?:Sync)?\s*\(|\bexecSync\s*\(",
        "🐚 **Security**: child_process.exec() spawns a shell. Prefer execFile()/spawn() with an argument array.",
        JAVASCRIPT,
    ),
    _rule(
        "php_shell_exec", _S, r"\b(?:shell_exec|passthru|system)\s*\(",
        "🐚 **Security**: Shell execution with untrusted input enables command injection. Escape arguments or avoid the shell.",
        PHP,
    ),
)

PERFORMANCE_RULES: Final[tuple[Rule, ...]] = (
    _rule(
        "blocking_sleep", _P, r"\btime\.sleep\(\s*[0-9]+(?:\.[0-9]+)?\s*\)",
        "⏱️ **Performance**: Long sleep() calls can block execution. Consider async alternatives or shorter intervals.",
        PYTHON,
    ),
    _rule(
        "thread_sleep", _P, r"\bThread\.sleep\s*\(",
        "⏱️ **Performance**: Thread.sleep() blocks the calling thread. Prefer scheduled executors or non-blocking waits.",
        JVM,
    ),
    _rule(
        "query_in_loop", _P,
        r"^(?:for|while)\b.*\b(?:execute|query|fetchone|fetchall|objects\.(?:get|filter))\s*\(",
        "🔁 **Performance**: Database query inside a loop (N+1 pattern). Batch the lookups or fetch once outside the loop.",
        CODE,
    ),
    _rule(
        "append_in_loop", _P, r"^for\b.*:\s*[\w.\[\]]+\.append\s*\([^)]*\)\s*$",
        "🐍 **Performance**: Consider list comprehension instead of append() in loops for better performance.",
        PYTHON,
    ),
    _rule(
        "pandas_iterrows", _P, r"\.iterrows\s*\(\s*\)",
        "🐼 **Performance**: iterrows() is slow. Consider vectorized operations or apply() methods.",
        PYTHON,
    ),
    _rule(
        "dom_lookup_in_loop", _P,
        r"(?:^(?:for|while)\b|\.forEach\s*\().*\bdocument\.(?:getElementById|getElementsBy\w+|querySelector(?:All)?)\s*\(",
        "🔍 **Performance**: DOM queries in loops are expensive. Cache element references outside the loop.",
        JAVASCRIPT,
    ),
    _rule(
        "inner_html_append", _P, r"\.innerHTML\s*\+=",
        "➕ **Performance**: innerHTML += in loops causes DOM reflow. Use DocumentFragment or build string first.",
        JAVASCRIPT,
    ),
    _rule(
        "select_star", _P, r"\bSELECT\s+\*\s+FROM\b",
        "🗃️ **Performance**: SELECT * can be inefficient. Specify only needed columns.",
        SQL, re.IGNORECASE,
    ),
    _rule(
        "leading_wildcard_like", _P, r"""\bLIKE\s+["']%""",
        "🔎 **Performance**: Leading wildcard LIKE queries can't use indexes efficiently.",
        SQL, re.IGNORECASE,
    ),
)

_DEBUG_MESSAGE = "🐛 **Code Quality**: Debug statement '{match}' found. Remove before production deployment."

QUALITY_RULES: Final[tuple[Rule, ...]] = (
    _rule("python_debug", _Q, r"(?<![\w.])(?:print|breakpoint)\s*\(|\bpdb\.set_trace\s*\(", _DEBUG_MESSAGE, PYTHON),
    _rule("js_debug", _Q, r"\bconsole\.(?:log|debug|trace)\s*\(|^debugger\b", _DEBUG_MESSAGE, JAVASCRIPT),
    _rule("php_debug", _Q, r"(?<![\w>:$])(?:var_dump|print_r|dd)\s*\(", _DEBUG_MESSAGE, PHP),
    _rule("java_debug", _Q, r"\bSystem\.(?:out|err)\.print(?:ln)?\s*\(|\.printStackTrace\s*\(", _DEBUG_MESSAGE, JAVA),
    _rule("ruby_debug", _Q, r"\bbinding\.pry\b|\bbyebug\b", _DEBUG_MESSAGE, RUBY),
    _rule(
        "todo_marker", _Q, r"\b(?:TODO|FIXME|HACK|XXX)\b",
        "📝 **Code Quality**: TODO/FIXME comment found. Consider addressing before merging.",
        CODE | CONFIG,
    ),
    _rule(
        "long_line", _Q, rf"^.{{{MAX_LINE_LENGTH + 1},}}$",
        "📏 **Code Quality**: Long line ({length} chars). Consider refactoring for better readability.",
        CODE,
    ),
    _rule(
        "loose_equality", _Q, r"(?<![=!<>])[=!]=(?!=)",
        "⚖️ **Code Quality**: Use strict equality (===) instead of loose equality (==).",
        JAVASCRIPT,
    ),
    _rule(
        "var_declaration", _Q, r"^var\s+\w",
        "📦 **Code Quality**: Use 'let' or 'const' instead of 'var' for better scoping.",
        JAVASCRIPT,
    ),
    _rule(
        "bare_except", _Q, r"^except\s*:",
        "🐍 **Code Quality**: Bare except clause catches all exceptions. Specify exception types.",
        PYTHON,
    ),
    _rule(
        "empty_catch", _Q, r"\bcatch\s*(?:\([^)]*\))?\s*\{\s*\}",
        "🕳️ **Code Quality**: Empty catch block silently swallows errors. Handle or log the exception.",
        JAVASCRIPT | JVM | frozenset({".cs", ".php", ".swift"}),
    ),
    _rule(
        "catch_all", _Q, r"\bcatch\s*\(\s*(?:final\s+)?(?:Exception|Throwable)\s+\w+\s*\)",
        "🎣 **Code Quality**: Catching Exception/Throwable hides unrelated failures. Catch specific exception types.",
        JAVA,
    ),
    _rule(
        "commented_code_hash", _Q,
        r"^#(?!!)\s*(?:(?:import|from|def|class|return|if|for|while|print)\b|[\w.\[\]]+\s*=(?!=)|.*[;{}()]\s*$)",
        "💭 **Code Quality**: Commented code detected. Remove unused code instead of commenting it out.",
        HASH_COMMENTS,
    ),
    _rule(
        "commented_code_slash", _Q,
        r"^//\s*(?:(?:const|let|var|return|if|for|while|function|import)\b|.*[;{}]\s*$)",
        "💭 **Code Quality**: Commented code detected. Remove unused code instead of commenting it out.",
        SLASH_COMMENTS,
    ),
)

DEFAULT_RULES: Final[dict[RuleFamily, tuple[Rule, ...]]] = {
    RuleFamily.SECURITY: SECURITY_RULES,
    RuleFamily.PERFORMANCE: PERFORMANCE_RULES,
    RuleFamily.QUALITY: QUALITY_RULES,
}
