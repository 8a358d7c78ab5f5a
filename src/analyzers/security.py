"""Security audit engine."""

import logging
import socket
import ssl
from datetime import datetime, timezone
from urllib.parse import urlparse

import httpx

from analyzers.base import BaseAnalyzer, PillarResult, clamp_score, score_band
from config import settings

logger = logging.getLogger(__name__)

INSIGHT_BANDS = [
    (90, "Excellent security configuration! Your website implements most security best practices."),
    (75, "Good security foundation with minor improvements needed. Address the identified issues to enhance protection."),
    (60, "Moderate security implementation. Several important security headers and practices need attention."),
    (40, "Poor security configuration. Many critical security measures are missing, leaving your site vulnerable."),
]
POOR_INSIGHT = "Very poor security implementation. Major security improvements needed to protect against common attacks."


class SecurityAnalyzer(BaseAnalyzer):
    """
    Analyzes website security posture from one live response.

    Checks:
    - HTTPS origin
    - Security headers (HSTS, X-Frame-Options, X-Content-Type-Options,
      X-XSS-Protection, CSP, Referrer-Policy)
    - Server and technology disclosure
    - TLS certificate validity and expiration
    """

    HTTPS_PENALTY = 30
    CERTIFICATE_PENALTY = 10
    DISCLOSURE_PENALTY = 5

    # Required security headers, each with the points lost when absent
    SECURITY_HEADERS = {
        "strict-transport-security": {
            "name": "HSTS (HTTP Strict Transport Security)",
            "points": 15,
            "recommendation": "Add HSTS header to prevent protocol downgrade attacks",
        },
        "x-frame-options": {
            "name": "X-Frame-Options",
            "points": 10,
            "recommendation": "Add X-Frame-Options header to prevent clickjacking attacks",
        },
        "x-content-type-options": {
            "name": "X-Content-Type-Options",
            "points": 8,
            "recommendation": "Add X-Content-Type-Options: nosniff header to prevent MIME type sniffing",
        },
        "x-xss-protection": {
            "name": "X-XSS-Protection",
            "points": 8,
            "recommendation": "Add X-XSS-Protection header to enable XSS filtering",
        },
        "content-security-policy": {
            "name": "Content Security Policy (CSP)",
            "points": 20,
            "recommendation": "Implement Content Security Policy to prevent XSS and injection attacks",
        },
        "referrer-policy": {
            "name": "Referrer Policy",
            "points": 5,
            "recommendation": "Add Referrer-Policy header to control referrer information",
        },
    }

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        check_certificate: bool = True,
    ):
        self._transport = transport
        self.check_certificate = check_certificate

    @property
    def name(self) -> str:
        return "security"

    def analyze(self, url: str) -> PillarResult:
        """
        Run security audit on the given URL.

        Args:
            url: Website URL to audit

        Returns:
            PillarResult with security findings
        """
        try:
            score = 100
            issues: list[str] = []
            recommendations: list[str] = []
            is_https = urlparse(url).scheme == "https"

            if not is_https:
                score -= self.HTTPS_PENALTY
                issues.append("Website not using HTTPS")
                recommendations.append("Implement SSL/TLS certificate and redirect HTTP to HTTPS")

            headers = self._fetch_headers(url)
            header_check = self._check_security_headers(headers)
            score -= header_check["penalty"]
            issues.extend(header_check["issues"])
            recommendations.extend(header_check["recommendations"])

            disclosure = self._check_information_disclosure(headers)
            score -= disclosure["penalty"]
            issues.extend(disclosure["issues"])
            recommendations.extend(disclosure["recommendations"])

            certificate = None
            if is_https and self.check_certificate:
                certificate = self._check_ssl_certificate(urlparse(url).hostname or "")
                if certificate["invalid"]:
                    score -= self.CERTIFICATE_PENALTY
                    issues.append("SSL certificate validation failed")
                    recommendations.append(
                        "Ensure SSL certificate is valid and properly configured"
                    )

            score = clamp_score(score)
            return PillarResult(
                score=score,
                analyzed=True,
                insights=score_band(score, INSIGHT_BANDS, POOR_INSIGHT),
                recommendations=recommendations,
                raw_data={
                    "score": score,
                    "uses_https": is_https,
                    "headers": header_check["present"],
                    "missing_headers": header_check["missing"],
                    "information_disclosure": disclosure,
                    "certificate": certificate,
                    "issues": issues,
                },
            )

        except httpx.TimeoutException:
            logger.error(f"Timeout fetching {url}")
            return PillarResult.failed(
                "Timeout fetching page", insights="Security analysis failed due to an error"
            )

        except Exception as e:
            logger.exception(f"Security audit failed for {url}: {e}")
            return PillarResult.failed(str(e), insights="Security analysis failed due to an error")

    def _fetch_headers(self, url: str) -> dict[str, str]:
        """HEAD the page, falling back to GET for servers that reject HEAD."""
        with httpx.Client(
            timeout=settings.security_timeout,
            follow_redirects=True,
            transport=self._transport,
            headers={"User-Agent": "SiteGrade-Security-Analyzer/1.0"},
        ) as client:
            response = client.head(url)
            if response.status_code == 405:
                response = client.get(url)
        return {key.lower(): value for key, value in response.headers.items()}

    def _check_security_headers(self, headers: dict[str, str]) -> dict:
        """Check for presence of each security header."""
        result = {
            "present": {},
            "missing": [],
            "penalty": 0,
            "issues": [],
            "recommendations": [],
        }

        for header_key, header_info in self.SECURITY_HEADERS.items():
            if headers.get(header_key):
                result["present"][header_key] = headers[header_key]
            else:
                result["missing"].append(header_key)
                result["penalty"] += header_info["points"]
                result["issues"].append(f"Missing {header_info['name']} header")
                result["recommendations"].append(header_info["recommendation"])

        return result

    def _check_information_disclosure(self, headers: dict[str, str]) -> dict:
        """Check for server information disclosure."""
        result = {
            "server_header": headers.get("server"),
            "x_powered_by": headers.get("x-powered-by"),
            "penalty": 0,
            "issues": [],
            "recommendations": [],
        }

        server = result["server_header"]
        if server and "cloudflare" not in server.lower():
            result["penalty"] += self.DISCLOSURE_PENALTY
            result["issues"].append("Server information disclosed in headers")
            result["recommendations"].append(
                "Hide or minimize server information in response headers"
            )

        if result["x_powered_by"]:
            result["penalty"] += self.DISCLOSURE_PENALTY
            result["issues"].append("Technology stack disclosed in headers")
            result["recommendations"].append(
                "Remove X-Powered-By header to avoid technology disclosure"
            )

        return result

    def _check_ssl_certificate(self, hostname: str) -> dict:
        """
        Check SSL certificate validity and expiration.

        `invalid` is only set for a certificate that fails verification or
        has expired; connection problems are recorded but not penalised.
        """
        result = {
            "valid": False,
            "invalid": False,
            "issuer": None,
            "expires": None,
            "days_until_expiry": None,
            "issues": [],
        }

        try:
            context = ssl.create_default_context()

            with socket.create_connection((hostname, 443), timeout=settings.security_timeout) as sock:
                with context.wrap_socket(sock, server_hostname=hostname) as ssock:
                    cert = ssock.getpeercert()

                    result["valid"] = True
                    result["issuer"] = dict(x[0] for x in cert.get("issuer", []))

                    not_after = cert.get("notAfter")
                    if not_after:
                        # SSL date format: 'Mar 10 23:59:59 2025 GMT'
                        expiry_date = datetime.strptime(not_after, "%b %d %H:%M:%S %Y %Z")
                        expiry_date = expiry_date.replace(tzinfo=timezone.utc)
                        result["expires"] = expiry_date.isoformat()

                        days_left = (expiry_date - datetime.now(timezone.utc)).days
                        result["days_until_expiry"] = days_left

                        if days_left < 0:
                            result["valid"] = False
                            result["invalid"] = True
                            result["issues"].append("SSL certificate has expired")
                        elif days_left < 30:
                            result["issues"].append(f"SSL certificate expires in {days_left} days")

        except ssl.SSLCertVerificationError as e:
            result["invalid"] = True
            result["issues"].append(f"SSL certificate verification failed: {e.reason}")
        except ssl.SSLError as e:
            result["invalid"] = True
            result["issues"].append(f"SSL error: {str(e)}")
        except socket.timeout:
            result["issues"].append("Connection timeout when checking SSL")
        except socket.gaierror:
            result["issues"].append("Could not resolve hostname")
        except OSError as e:
            result["issues"].append(f"SSL check failed: {str(e)}")

        return result
