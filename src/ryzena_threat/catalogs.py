# Copyright (c) 2026 John Earle
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Default detection catalogs.

Plain data only: phrase lists, TLD sets, regex sources and extension sets.
These are the defaults baked into ThreatConfig; every one of them can be
overridden from the ``threat:`` section of config.yaml.
"""

# ---------------------------------------------------------------------------
# Phrase lists (case-insensitive substring matching)
# ---------------------------------------------------------------------------

#: Urgency / pressure language.
URGENCY_KEYWORDS: tuple[str, ...] = (
    "urgent", "immediately", "action required", "act now", "limited time",
    "expires", "suspended", "verify now", "confirm now", "within 24 hours",
    "within 48 hours", "account will be", "failure to", "unauthorized",
    "security alert", "unusual activity", "your account has been",
)

#: Credential harvesting phrases.
CREDENTIAL_PHRASES: tuple[str, ...] = (
    "verify your account", "confirm your identity", "update your information",
    "update your password", "reset your password", "enter your credentials",
    "login credentials", "sign in to verify", "confirm your details",
    "provide your", "enter your ssn", "social security", "bank account",
    "credit card", "card number",
)

#: Financial urgency / advance-fee language.
FINANCIAL_PHRASES: tuple[str, ...] = (
    "wire transfer", "bank transfer", "payment pending", "invoice attached",
    "overdue payment", "payment required", "claim your prize", "you have won",
    "lottery", "inheritance", "million dollars", "bitcoin", "cryptocurrency",
    "investment opportunity",
)

#: Greetings that avoid naming the recipient.
GENERIC_GREETINGS: tuple[str, ...] = (
    "dear customer", "dear user", "dear sir", "dear madam", "dear valued",
    "dear member", "dear account holder",
)

#: Brands commonly impersonated. Spaces are dropped before comparing
#: against the sender domain ("bank of america" -> "bankofamerica").
BRAND_NAMES: tuple[str, ...] = (
    "paypal", "microsoft", "apple", "google", "amazon", "netflix",
    "bank of america", "wells fargo", "chase", "facebook", "instagram",
    "linkedin", "dropbox", "office365",
)

# ---------------------------------------------------------------------------
# Domains and TLDs
# ---------------------------------------------------------------------------

#: Domain suffixes (with leading dot) checked against sender and link hosts.
SUSPICIOUS_TLDS: tuple[str, ...] = (
    ".xyz", ".top", ".click", ".link", ".info", ".tk", ".ml", ".ga", ".cf",
    ".gq", ".buzz", ".work", ".loan", ".win", ".racing", ".download",
    ".stream", ".science", ".party", ".review", ".trade", ".bid",
    ".accountant", ".cricket", ".date", ".faith", ".men", ".webcam",
)

#: Bare TLD labels considered suspicious for link hosts.
URL_SUSPICIOUS_TLDS: frozenset[str] = frozenset({
    "xyz", "top", "click", "link", "info", "tk", "ml", "ga", "cf", "gq",
    "buzz", "work", "loan", "win", "racing", "download", "stream", "science",
    "party", "review", "trade", "bid", "accountant", "cricket", "date",
    "faith", "men", "webcam", "zip", "mov", "icu", "cyou", "site", "online",
})

#: Hosts that earn the trusted-domain discount (exact or parent match).
TRUSTED_DOMAINS: tuple[str, ...] = (
    "google.com", "microsoft.com", "apple.com", "amazon.com", "github.com",
    "linkedin.com", "facebook.com", "twitter.com", "youtube.com",
    "wikipedia.org", "edu", "gov",
)

#: SPF / DKIM / DMARC verdicts that count as an authentication failure.
AUTH_FAILURE_VALUES: tuple[str, ...] = (
    "fail", "softfail", "none", "temperror", "permerror",
)

# ---------------------------------------------------------------------------
# URL regex sources (compiled case-insensitively unless they say otherwise)
# ---------------------------------------------------------------------------

#: Redirect parameters and shortener hosts.
REDIRECT_PATTERNS: tuple[str, ...] = (
    r"\bredirect\b",
    r"\burl=",
    r"\bgoto=",
    r"\bnext=",
    r"\breturn=",
    r"\bcontinue=",
    r"\bforward=",
    r"\blink=",
    r"bit\.ly",
    r"tinyurl",
    r"t\.co/",
    r"goo\.gl",
    r"is\.gd",
    r"buff\.ly",
    r"ow\.ly",
    r"short\.",
)

#: Phishing-style URL shapes. Each distinct match adds to the risk score.
MALICIOUS_PATTERNS: tuple[str, ...] = (
    r"login[.-]",
    r"signin[.-]",
    r"account[.-]verify",
    r"secure[.-]",
    r"update[.-]info",
    r"confirm[.-]",
    r"verify[.-]account",
    r"suspended",
    r"\.php\?",
    r"password",
    r"credential",
    r"@.*@",
    r"[^\w]0[^\w]",
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}",
)

# ---------------------------------------------------------------------------
# Attachment extension sets (lower-case, no leading dot)
# ---------------------------------------------------------------------------

EXECUTABLE_EXTENSIONS: frozenset[str] = frozenset({
    "exe", "scr", "com", "bat", "cmd", "pif", "msi", "msp", "dll", "cpl",
    "jar", "app", "hta", "lnk", "reg", "sys", "drv", "inf",
})

SCRIPT_EXTENSIONS: frozenset[str] = frozenset({
    "js", "jse", "vbs", "vbe", "wsf", "wsh", "ps1", "psm1", "sh",
})

MACRO_EXTENSIONS: frozenset[str] = frozenset({
    "docm", "xlsm", "pptm", "dotm", "xltm", "xlam", "potm", "ppsm",
})

ARCHIVE_EXTENSIONS: frozenset[str] = frozenset({
    "zip", "rar", "7z", "tar", "gz", "bz2", "xz", "cab", "iso", "img",
})
