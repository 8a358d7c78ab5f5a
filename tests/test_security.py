import httpx

from analyzers.security import SecurityAnalyzer

HARDENED_HEADERS = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Content-Security-Policy": "default-src 'self'",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def respond_with(headers, status_code=200, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, headers=headers)

    return httpx.MockTransport(handler)


def test_http_site_without_headers_loses_every_penalty():
    analyzer = SecurityAnalyzer(transport=respond_with({}), check_certificate=False)

    result = analyzer.analyze("http://example.org")

    # 100 - 30 (no HTTPS) - 15 - 10 - 8 - 8 - 20 - 5
    assert result.analyzed
    assert result.score == 4
    assert not result.raw_data["uses_https"]
    assert len(result.raw_data["missing_headers"]) == 6
    assert "Website not using HTTPS" in result.raw_data["issues"]


def test_hardened_https_site_scores_full_marks():
    seen = []
    analyzer = SecurityAnalyzer(transport=respond_with(HARDENED_HEADERS, seen=seen), check_certificate=False)

    result = analyzer.analyze("https://example.org")

    assert result.score == 100
    assert result.insights.startswith("Excellent security configuration")
    assert seen[0].method == "HEAD"
    assert seen[0].headers["User-Agent"] == "SiteGrade-Security-Analyzer/1.0"


def test_information_disclosure_penalties():
    headers = {**HARDENED_HEADERS, "Server": "nginx/1.25.3", "X-Powered-By": "PHP/8.2"}
    analyzer = SecurityAnalyzer(transport=respond_with(headers), check_certificate=False)

    result = analyzer.analyze("https://example.org")

    assert result.score == 90
    assert result.raw_data["information_disclosure"]["server_header"] == "nginx/1.25.3"


def test_cloudflare_server_header_is_not_penalized():
    headers = {**HARDENED_HEADERS, "Server": "cloudflare"}
    analyzer = SecurityAnalyzer(transport=respond_with(headers), check_certificate=False)

    assert analyzer.analyze("https://example.org").score == 100


def test_head_not_allowed_falls_back_to_get():
    seen = []

    def handler(request):
        seen.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(405)
        return httpx.Response(200, headers=HARDENED_HEADERS)

    analyzer = SecurityAnalyzer(transport=httpx.MockTransport(handler), check_certificate=False)

    assert analyzer.analyze("https://example.org").score == 100
    assert seen == ["HEAD", "GET"]


def test_invalid_certificate_costs_ten_points(monkeypatch):
    analyzer = SecurityAnalyzer(transport=respond_with(HARDENED_HEADERS))
    monkeypatch.setattr(
        analyzer,
        "_check_ssl_certificate",
        lambda hostname: {"valid": False, "invalid": True, "issues": ["SSL certificate has expired"]},
    )

    result = analyzer.analyze("https://example.org")

    assert result.score == 90
    assert "SSL certificate validation failed" in result.raw_data["issues"]


def test_timeout_is_a_soft_failure():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = SecurityAnalyzer(transport=httpx.MockTransport(handler)).analyze("https://example.org")

    assert not result.analyzed
    assert result.score == 0
    assert result.error == "Timeout fetching page"
