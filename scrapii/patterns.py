"""Rule tables used by the vulnerability pattern scanner.

Every table is ordered; the scanner walks it top to bottom and reports
findings in the same order. Regexes are compiled once at import time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Tuple

from .models import SEVERITY_CRITICAL, SEVERITY_HIGH, SEVERITY_LOW, SEVERITY_MEDIUM

CATEGORY_CREDENTIALS = "credentials"
CATEGORY_CODE = "code"
CATEGORY_VERSION = "version"
CATEGORY_CONFIGURATION = "configuration"

CREDENTIAL_FINDING_NAME = "HARDCODED CREDENTIAL"
CODE_FINDING_NAME = "JavaScript Vulnerability Pattern"


@dataclass(frozen=True)
class CredentialPattern:
    regex: Pattern[str]
    vulnerability: str
    severity: str
    exploitation: str
    recommendation: str


@dataclass(frozen=True)
class CodePattern:
    regex: Pattern[str]
    vulnerability: str
    severity: str
    exploitation: str
    recommendation: str
    confidence: float = 0.8


@dataclass(frozen=True)
class ConfigPattern:
    regex: Pattern[str]
    name: str
    label: str
    vulnerability: str
    severity: str
    recommendation: str


@dataclass(frozen=True)
class VersionVulnerability:
    versions: Tuple[str, ...]
    vulnerability: str
    severity: str
    recommendation: str
    exploitation: str
    cve_id: Optional[str] = None


def _ci(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


CREDENTIAL_PATTERNS: Tuple[CredentialPattern, ...] = (
    CredentialPattern(
        regex=_ci(r"""api[_-]?key["']?\s*[:=]\s*["'](?P<value>(?!AIzaSy|GTM-|UA-|G-|fb|ghp_)[a-zA-Z0-9]{32,})["']"""),
        vulnerability="Hardcoded API key",
        severity=SEVERITY_CRITICAL,
        exploitation="Keys embedded in page source grant unauthorized access to external services",
        recommendation="Move API keys to environment variables or a server-side secret store",
    ),
    CredentialPattern(
        regex=_ci(r"""secret[_-]?key["']?\s*[:=]\s*["'](?P<value>(?!AIzaSy|GTM-)[a-zA-Z0-9]{32,})["']"""),
        vulnerability="Hardcoded secret key",
        severity=SEVERITY_CRITICAL,
        exploitation="Secret keys in client code allow unauthorized access and privilege escalation",
        recommendation="Use environment variables and a secrets management system",
    ),
    CredentialPattern(
        regex=_ci(
            r"""token["']?\s*[:=]\s*["'](?P<value>(?!GTM-|AIzaSy|google|fb|ghp_|UA-|G-|ca-|pk_)[a-zA-Z0-9]{20,})["']"""
        ),
        vulnerability="Hardcoded authentication token",
        severity=SEVERITY_HIGH,
        exploitation="Embedded authentication tokens let attackers bypass login entirely",
        recommendation="Issue tokens at runtime, store them securely and rotate them regularly",
    ),
    CredentialPattern(
        regex=_ci(r"""password["']?\s*[:=]\s*["'](?P<value>[^"']{6,})["']"""),
        vulnerability="Hardcoded password",
        severity=SEVERITY_CRITICAL,
        exploitation="Passwords in page source expose systems and databases directly",
        recommendation="Remove the password and authenticate through a proper backend flow",
    ),
    CredentialPattern(
        regex=_ci(r"""private[_-]?key["']?\s*[:=]\s*["'](?P<value>-----BEGIN [A-Z ]+-----)"""),
        vulnerability="Hardcoded private key",
        severity=SEVERITY_CRITICAL,
        exploitation="Private keys allow decryption of traffic and impersonation of the owner",
        recommendation="Keep cryptographic keys in a key management service, never in markup",
    ),
    CredentialPattern(
        regex=_ci(r"sk_live_[a-zA-Z0-9]{24,}"),
        vulnerability="Stripe live secret key exposed",
        severity=SEVERITY_CRITICAL,
        exploitation="A Stripe secret key gives full control over payments and refunds",
        recommendation="Roll the key immediately and keep payment calls on the server",
    ),
    CredentialPattern(
        regex=_ci(r"pk_live_[a-zA-Z0-9]{24,}"),
        vulnerability="Stripe live publishable key exposed",
        severity=SEVERITY_MEDIUM,
        exploitation="Publishable keys identify the account but cannot move money on their own",
        recommendation="Confirm the value is a publishable key and not a secret key",
    ),
    CredentialPattern(
        regex=_ci(r"ghp_[a-zA-Z0-9]{36}"),
        vulnerability="GitHub personal access token exposed",
        severity=SEVERITY_CRITICAL,
        exploitation="A GitHub token grants access to repositories and organization settings",
        recommendation="Revoke the token and use fine-grained tokens kept off the client",
    ),
)

# Values matching one of these are well-known public identifiers, not secrets.
SAFE_CREDENTIAL_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"^AIzaSy[a-zA-Z0-9_-]{35}$",
        r"^GTM-[A-Z0-9]{6,8}$",
        r"^UA-\d{4,}-\d+$",
        r"^G-[A-Z0-9]{8,}$",
        r"^firebase[_-]?[a-zA-Z0-9_-]*$",
        r"^pk_test_[a-zA-Z0-9]{24,}$",
        r"^pk_live_[a-zA-Z0-9]{24,}$",
        r"^fb\d{13,}$",
        r"^ca\d{19}$",
        r"^ghp_[a-zA-Z0-9]{36}$",
        r"^eyJ[a-zA-Z0-9_-]*$",
        r"^[a-zA-Z0-9_-]{32}$",
        r"^[a-zA-Z0-9_-]{40}$",
    )
)

LEGITIMATE_SERVICE_KEYWORDS = ("google", "firebase", "gtm", "analytics")
LEGITIMATE_SERVICE_PREFIXES = ("pk_", "ua-", "g-")


CODE_PATTERNS: Tuple[CodePattern, ...] = (
    CodePattern(
        regex=_ci(r"eval\s*\("),
        vulnerability="Dangerous eval() execution",
        severity=SEVERITY_CRITICAL,
        exploitation="eval() runs arbitrary JavaScript and turns any injection into code execution",
        recommendation="Remove eval(); use JSON.parse() for data and explicit dispatch for logic",
        confidence=0.9,
    ),
    CodePattern(
        regex=_ci(r"""setTimeout\s*\(\s*['"]"""),
        vulnerability="Code injection via setTimeout with a string argument",
        severity=SEVERITY_CRITICAL,
        exploitation="A string passed to setTimeout is compiled and executed like eval()",
        recommendation="Pass a function reference instead of a string",
        confidence=0.9,
    ),
    CodePattern(
        regex=_ci(r"""setInterval\s*\(\s*['"]"""),
        vulnerability="Code injection via setInterval with a string argument",
        severity=SEVERITY_CRITICAL,
        exploitation="A string passed to setInterval is compiled and executed repeatedly",
        recommendation="Pass a function reference instead of a string",
        confidence=0.9,
    ),
    CodePattern(
        regex=_ci(r"innerHTML\s*="),
        vulnerability="DOM XSS via innerHTML assignment",
        severity=SEVERITY_HIGH,
        exploitation="innerHTML parses markup, so unsanitized input can inject script",
        recommendation="Use textContent or createElement(), or sanitize with DOMPurify",
        confidence=0.8,
    ),
    CodePattern(
        regex=_ci(r"document\.write\s*\("),
        vulnerability="XSS via document.write()",
        severity=SEVERITY_HIGH,
        exploitation="document.write() can inject script and sidestep a content security policy",
        recommendation="Build nodes with createElement() and appendChild()",
        confidence=0.85,
    ),
    CodePattern(
        regex=_ci(r"outerHTML\s*="),
        vulnerability="XSS via outerHTML assignment",
        severity=SEVERITY_HIGH,
        exploitation="outerHTML replaces the element with parsed markup",
        recommendation="Use replaceChild() with nodes built from trusted data",
    ),
    CodePattern(
        regex=_ci(r"\.insertAdjacentHTML\s*\("),
        vulnerability="XSS via insertAdjacentHTML",
        severity=SEVERITY_HIGH,
        exploitation="insertAdjacentHTML inserts parsed markup without sanitization",
        recommendation="Use insertAdjacentText() or sanitize the markup first",
    ),
    CodePattern(
        regex=_ci(r"\$\([^)]*\)\.html\s*\("),
        vulnerability="jQuery XSS via .html()",
        severity=SEVERITY_HIGH,
        exploitation="jQuery .html() evaluates markup and inline handlers",
        recommendation="Use .text() for plain text and sanitize markup before .html()",
    ),
    CodePattern(
        regex=_ci(r"""\$\([^)]*\)\.append\s*\(\s*['"][^'"]*<.*>"""),
        vulnerability="jQuery XSS via .append() with markup",
        severity=SEVERITY_HIGH,
        exploitation="Appending unvalidated markup allows script injection",
        recommendation="Append text nodes or validate markup before .append()",
    ),
    CodePattern(
        regex=_ci(r"""\$\([^)]*\)\.prepend\s*\(\s*['"][^'"]*<.*>"""),
        vulnerability="jQuery XSS via .prepend() with markup",
        severity=SEVERITY_HIGH,
        exploitation="Prepending unvalidated markup allows script injection",
        recommendation="Sanitize markup before .prepend()",
    ),
    CodePattern(
        regex=_ci(r"__proto__\s*=\s*"),
        vulnerability="Prototype pollution through __proto__ assignment",
        severity=SEVERITY_CRITICAL,
        exploitation="Writing __proto__ changes every object and can escalate to code execution",
        recommendation="Block __proto__ keys and build objects with Object.create(null)",
    ),
    CodePattern(
        regex=_ci(r"constructor\.prototype\s*=\s*"),
        vulnerability="Constructor prototype pollution",
        severity=SEVERITY_HIGH,
        exploitation="Replacing a constructor prototype affects all instances",
        recommendation="Freeze shared prototypes with Object.freeze()",
    ),
    CodePattern(
        regex=_ci(r"Object\.assign\s*\([^,]*,\s*[^)]*__proto__[^)]*\)"),
        vulnerability="Prototype pollution via Object.assign",
        severity=SEVERITY_HIGH,
        exploitation="Object.assign copies a malicious __proto__ key onto the target",
        recommendation="Validate source objects before merging them",
    ),
    CodePattern(
        regex=_ci(r"""location\s*=\s*['"]?\s*\+"""),
        vulnerability="Open redirect through dynamic location",
        severity=SEVERITY_HIGH,
        exploitation="Concatenated redirect targets enable phishing through a trusted domain",
        recommendation="Check redirect targets against an allowlist",
    ),
    CodePattern(
        regex=_ci(r"window\.open\s*\([^)]*\+[^)]*\)"),
        vulnerability="Dynamic window.open with an unvalidated URL",
        severity=SEVERITY_MEDIUM,
        exploitation="A concatenated URL can send visitors to a hostile site",
        recommendation="Validate URLs before passing them to window.open()",
    ),
    CodePattern(
        regex=_ci(r"""href\s*=\s*['"]?\s*\+"""),
        vulnerability="Dynamic href construction",
        severity=SEVERITY_HIGH,
        exploitation="Concatenated links can carry javascript: URLs",
        recommendation="Parse and validate URLs before assigning them to href",
    ),
    CodePattern(
        regex=_ci(r"atob\s*\([^)]*\)"),
        vulnerability="Base64 decoding of embedded content",
        severity=SEVERITY_MEDIUM,
        exploitation="Encoded blobs often hide injected payloads",
        recommendation="Validate decoded content before using it",
        confidence=0.6,
    ),
    CodePattern(
        regex=_ci(r"fromCharCode\s*\(\s*[\d,\s]*\)"),
        vulnerability="Code obfuscation via String.fromCharCode",
        severity=SEVERITY_MEDIUM,
        exploitation="Character-code strings are a common way to hide malicious code",
        recommendation="Review the decoded string and remove obfuscated code",
        confidence=0.6,
    ),
    CodePattern(
        regex=_ci(r"unescape\s*\("),
        vulnerability="Decoding of URL-encoded content",
        severity=SEVERITY_MEDIUM,
        exploitation="unescape() is used to smuggle encoded payloads",
        recommendation="Use decodeURIComponent() and validate the result",
        confidence=0.6,
    ),
    CodePattern(
        regex=_ci(r"(?<!\.)\bexec\s*\("),
        vulnerability="System command execution via exec()",
        severity=SEVERITY_CRITICAL,
        exploitation="exec() runs shell commands without validation",
        recommendation="Avoid command execution; call native APIs instead",
    ),
    CodePattern(
        regex=_ci(r"(?<!\.)\bsystem\s*\("),
        vulnerability="System command execution via system()",
        severity=SEVERITY_CRITICAL,
        exploitation="system() runs shell commands with the process privileges",
        recommendation="Remove system() calls",
    ),
    CodePattern(
        regex=_ci(r"(?<!\.)\bshell_exec\s*\("),
        vulnerability="Shell command execution",
        severity=SEVERITY_CRITICAL,
        exploitation="shell_exec() runs shell commands without restriction",
        recommendation="Disable shell_exec() and use safer APIs",
    ),
    CodePattern(
        regex=_ci(r"console\.(log|error|warn|info)\s*\("),
        vulnerability="Information disclosure via console.* logging",
        severity=SEVERITY_MEDIUM,
        exploitation="Production logs reveal internal structure and data",
        recommendation="Strip console output from production builds",
        confidence=0.6,
    ),
    CodePattern(
        regex=_ci(r"debug\s*=\s*true"),
        vulnerability="Debug flag enabled in production",
        severity=SEVERITY_HIGH,
        exploitation="Debug output exposes internals and helps reconnaissance",
        recommendation="Disable debug flags in production builds",
    ),
    CodePattern(
        regex=_ci(r"alert\s*\([^)]*\)"),
        vulnerability="alert() statement left in production",
        severity=SEVERITY_LOW,
        exploitation="Alerts disrupt visitors and can leak information",
        recommendation="Replace alert() with proper notifications",
        confidence=0.5,
    ),
    CodePattern(
        regex=_ci(r"confirm\s*\([^)]*\)"),
        vulnerability="confirm() statement left in production",
        severity=SEVERITY_LOW,
        exploitation="Native dialogs disrupt visitors and can leak information",
        recommendation="Replace confirm() with an in-page dialog",
        confidence=0.5,
    ),
    CodePattern(
        regex=_ci(r"""document\.cookie\s*=\s*['"][^'"]*secure\s*=\s*false"""),
        vulnerability="Cookie written without the Secure flag",
        severity=SEVERITY_MEDIUM,
        exploitation="The cookie travels over plain HTTP and can be sniffed",
        recommendation="Set the Secure flag on session cookies",
    ),
    CodePattern(
        regex=_ci(r"""document\.cookie\s*=\s*['"][^'"]*httponly\s*=\s*false"""),
        vulnerability="Cookie written without the HttpOnly flag",
        severity=SEVERITY_MEDIUM,
        exploitation="Script can read the cookie, so any XSS steals the session",
        recommendation="Set the HttpOnly flag on sensitive cookies",
    ),
    CodePattern(
        regex=_ci(r"""document\.cookie\s*=\s*['"][^'"]*samesite\s*=\s*none"""),
        vulnerability="Cookie with SameSite=None",
        severity=SEVERITY_HIGH,
        exploitation="The cookie is sent on cross-site requests, enabling CSRF",
        recommendation="Use SameSite=Strict or Lax, or add the Secure flag",
    ),
    CodePattern(
        regex=_ci(r"(union|select|insert|update|delete|drop|create|alter)\s+.*\s+from\s+"),
        vulnerability="SQL statement embedded in page",
        severity=SEVERITY_CRITICAL,
        exploitation="Client-built SQL suggests injection if user input reaches it",
        recommendation="Use prepared statements on the server and never build SQL in the client",
        confidence=0.5,
    ),
    CodePattern(
        regex=_ci(r"\.\./"),
        vulnerability="Path traversal sequence",
        severity=SEVERITY_HIGH,
        exploitation="../ sequences can indicate directory traversal attempts",
        recommendation="Validate paths against an allowlist of files",
        confidence=0.4,
    ),
    CodePattern(
        regex=_ci(r"JSON\.parse\s*\("),
        vulnerability="JSON.parse on unvalidated input",
        severity=SEVERITY_LOW,
        exploitation="Parsing untrusted JSON without validation can break application state",
        recommendation="Validate the JSON structure against a schema",
        confidence=0.5,
    ),
    CodePattern(
        regex=_ci(r"XMLHttpRequest\s*\(\)"),
        vulnerability="XMLHttpRequest usage",
        severity=SEVERITY_LOW,
        exploitation="Cross-origin requests need explicit validation",
        recommendation="Use fetch() with strict CORS and Content-Type checks",
        confidence=0.5,
    ),
)


CONFIG_PATTERNS: Tuple[ConfigPattern, ...] = (
    ConfigPattern(
        regex=_ci(r"debug\s*=\s*true"),
        name="Debug Configuration",
        label="Enabled",
        vulnerability="Debug flag enabled in the production environment",
        severity=SEVERITY_MEDIUM,
        recommendation="Disable debug output in production through per-environment config",
    ),
    ConfigPattern(
        regex=_ci(r"console\.(log|error|warn|info|debug)"),
        name="Console Logging",
        label="Present",
        vulnerability="Console logging in production code exposes information",
        severity=SEVERITY_MEDIUM,
        recommendation="Use structured logging with levels and drop console output in production",
    ),
    ConfigPattern(
        regex=_ci(r"development\s*=\s*true"),
        name="Development Mode",
        label="Enabled",
        vulnerability="Dev build flag enabled in production",
        severity=SEVERITY_MEDIUM,
        recommendation="Ship production builds with per-environment configuration",
    ),
    ConfigPattern(
        regex=_ci(r"""alloworigin\s*=\s*["']\*["']"""),
        name="CORS Configuration",
        label="Overly Permissive",
        vulnerability="CORS allows all origins (*), exposing the site to cross-origin attacks",
        severity=SEVERITY_HIGH,
        recommendation="Restrict CORS to the specific origins that need access",
    ),
)


VULNERABILITY_DATABASE: Dict[str, VersionVulnerability] = {
    "jQuery": VersionVulnerability(
        versions=("1.", "2.", "3.0.", "3.1.", "3.2.", "3.3.", "3.4."),
        vulnerability="jQuery XSS and prototype pollution (CVE-2020-11022, CVE-2020-11023)",
        severity=SEVERITY_HIGH,
        cve_id="CVE-2020-11022, CVE-2020-11023",
        recommendation="Upgrade to jQuery 3.5.1 or later and prefer .text() over .html()",
        exploitation="Crafted markup passed to DOM helpers executes arbitrary JavaScript",
    ),
    "React": VersionVulnerability(
        versions=("15.", "16.", "17.0.", "17.1.", "17.2."),
        vulnerability="XSS through dangerouslySetInnerHTML and URL handling (CVE-2019-7580)",
        severity=SEVERITY_HIGH,
        cve_id="CVE-2019-7580",
        recommendation="Upgrade to React 18 and sanitize any HTML with DOMPurify",
        exploitation="Unsanitized HTML in components injects script past the virtual DOM",
    ),
    "WordPress": VersionVulnerability(
        versions=(
            "4.", "5.0.", "5.1.", "5.2.", "5.3.", "5.4.", "5.5.", "5.6.", "5.7.", "5.8.",
            "5.9.", "6.0.", "6.1.", "6.2.", "6.3.",
        ),
        vulnerability="WordPress XSS, SQL injection, RCE and malicious upload issues (multiple CVEs)",
        severity=SEVERITY_CRITICAL,
        cve_id="CVE-2022-39986, CVE-2023-39952, CVE-2023-2745",
        recommendation="Upgrade WordPress to 6.4 or later and apply every security release",
        exploitation="Unauthenticated SQL injection and remote code execution are possible",
    ),
    "PHP": VersionVulnerability(
        versions=("5.", "7.0.", "7.1.", "7.2.", "7.3.", "7.4.", "8.0.", "8.1.", "8.2."),
        vulnerability="PHP remote code execution and file inclusion issues (CVE-2023-3247)",
        severity=SEVERITY_CRITICAL,
        cve_id="CVE-2023-3247, CVE-2023-6647, CVE-2023-3824",
        recommendation="Upgrade PHP to 8.3 or later and disable dangerous functions",
        exploitation="Remote file inclusion and unrestricted command execution",
    ),
    "Angular": VersionVulnerability(
        versions=(
            "1.", "2.", "4.", "5.", "6.", "7.", "8.", "9.", "10.", "11.", "12.", "13.",
            "14.", "15.", "16.",
        ),
        vulnerability="Angular template XSS (CVE-2020-5216)",
        severity=SEVERITY_HIGH,
        cve_id="CVE-2020-5216, CVE-2022-23042",
        recommendation="Upgrade to Angular 17 LTS and rely on DomSanitizer",
        exploitation="Unsanitized template content executes script",
    ),
    "Vue.js": VersionVulnerability(
        versions=(
            "2.0.", "2.1.", "2.2.", "2.3.", "2.4.", "2.5.", "2.6.", "3.0.", "3.1.", "3.2.", "3.3.",
        ),
        vulnerability="XSS via the v-html directive and template injection (CVE-2023-2649)",
        severity=SEVERITY_HIGH,
        cve_id="CVE-2023-2649, CVE-2023-4147",
        recommendation="Upgrade to Vue 3.4 or later and avoid v-html",
        exploitation="Unfiltered v-html content injects script",
    ),
    "Bootstrap": VersionVulnerability(
        versions=("3.", "4.", "5.0.", "5.1.", "5.2.", "5.3."),
        vulnerability="Bootstrap tooltip and popover XSS (CVE-2019-8331)",
        severity=SEVERITY_MEDIUM,
        cve_id="CVE-2019-8331",
        recommendation="Upgrade Bootstrap and validate content shown in tooltips",
        exploitation="data- attributes on tooltips can carry script",
    ),
    "jQuery UI": VersionVulnerability(
        versions=("1.10.", "1.11.", "1.12.", "1.13."),
        vulnerability="jQuery UI XSS in class handling",
        severity=SEVERITY_HIGH,
        recommendation="Upgrade jQuery UI and avoid dynamic class names from input",
        exploitation="Dynamic CSS class manipulation injects script",
    ),
    "Moment.js": VersionVulnerability(
        versions=("2.22.", "2.23.", "2.24.", "2.25.", "2.26.", "2.27.", "2.28."),
        vulnerability="Moment.js path traversal and ReDoS (CVE-2022-24729)",
        severity=SEVERITY_HIGH,
        cve_id="CVE-2022-24729",
        recommendation="Migrate to Day.js, date-fns or Luxon",
        exploitation="Crafted date formats cause traversal and catastrophic backtracking",
    ),
    "Lodash": VersionVulnerability(
        versions=(
            "4.17.0", "4.17.1", "4.17.2", "4.17.3", "4.17.4", "4.17.5", "4.17.6", "4.17.7",
            "4.17.8", "4.17.9", "4.17.10", "4.17.11",
        ),
        vulnerability="Lodash prototype pollution (CVE-2019-10744)",
        severity=SEVERITY_CRITICAL,
        cve_id="CVE-2019-10744",
        recommendation="Upgrade to Lodash 4.17.21 or later",
        exploitation="Polluted object prototypes lead to authentication bypass and RCE",
    ),
    "Express": VersionVulnerability(
        versions=("4.0.", "4.1.", "4.2.", "4.3.", "4.4.", "4.5.", "4.6.", "4.7.", "4.8.", "4.9."),
        vulnerability="Express XSS, open redirect and header injection issues",
        severity=SEVERITY_MEDIUM,
        recommendation="Upgrade Express and add helmet middleware",
        exploitation="Malformed headers enable redirects and injected content",
    ),
    "Webpack": VersionVulnerability(
        versions=("1.", "2.", "3.", "4.", "5.0.", "5.1.", "5.2.", "5.3."),
        vulnerability="Webpack module enumeration and information disclosure",
        severity=SEVERITY_MEDIUM,
        recommendation="Build for production without public source maps",
        exploitation="Module names and source maps reveal the application structure",
    ),
}
