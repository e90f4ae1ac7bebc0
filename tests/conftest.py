"""
Shared raw RFC 822 fixtures.

Parts without a Content-Transfer-Encoding header are intentional: they
exercise the default encoding normalization.
"""

import pytest


@pytest.fixture
def alternative_email() -> bytes:
    """multipart/alternative root with plain and html renderings."""
    return b"""From: Sender <sender@example.com>
To: Recipient <recipient@example.com>
Subject: Greeting
Date: Mon, 13 Jan 2026 10:00:00 +0000
Message-ID: <alt@example.com>
MIME-Version: 1.0
Content-Type: multipart/alternative; boundary="ALT"

--ALT
Content-Type: text/plain; charset="utf-8"

Hello
--ALT
Content-Type: text/html; charset="utf-8"

<p>Hello</p>
--ALT--
"""


@pytest.fixture
def related_email() -> bytes:
    """multipart/mixed wrapping related(alternative(plain, html), inline png)."""
    return b"""From: Sender <sender@example.com>
Subject: Newsletter
MIME-Version: 1.0
Content-Type: multipart/mixed; boundary="MIX"

--MIX
Content-Type: multipart/related; boundary="REL"

--REL
Content-Type: multipart/alternative; boundary="ALT"

--ALT
Content-Type: text/plain; charset="utf-8"

Hello
--ALT
Content-Type: text/html; charset="utf-8"

<p>Hello</p>
--ALT--

--REL
Content-Type: image/png
Content-Transfer-Encoding: base64
Content-ID: <logo@example.com>
Content-Disposition: inline; filename="logo.png"

ZmFrZS1wbmc=
--REL--

--MIX--
"""


@pytest.fixture
def attachment_email() -> bytes:
    """multipart/mixed with a plain body and a pdf attachment."""
    return b"""From: Sender <sender@example.com>
Subject: =?utf-8?b?UmFwcG9ydCB0cmltZXN0cmllbA==?=
MIME-Version: 1.0
Content-Type: multipart/mixed; boundary="MIX"

--MIX
Content-Type: text/plain; charset="utf-8"

See attached
--MIX
Content-Type: application/pdf
Content-Transfer-Encoding: base64
Content-Disposition: attachment; filename="report.pdf"

JVBERi0xLjQ=
--MIX--
"""
