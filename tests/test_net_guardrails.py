import unittest
from unittest.mock import patch
import socket

from net_guardrails import (
    parse_robots,
    parse_robots_sitemaps,
    resolve_public_ip,
    robots_disallows,
    validate_url,
)


class TestNetGuardrails(unittest.TestCase):
    def test_valid_urls(self):
        """Public addresses pass validation."""
        with patch('socket.getaddrinfo') as mock_dns:
            mock_dns.return_value = [(0, 0, 0, 0, ('93.184.216.34', 443))]
            validate_url("https://example.org")
            validate_url("http://example.org/services/apply")

    def test_invalid_scheme(self):
        with self.assertRaises(ValueError) as cm:
            validate_url("ftp://example.org")
        self.assertIn("Unsafe scheme", str(cm.exception))

        with self.assertRaises(ValueError) as cm:
            validate_url("javascript:alert(1)")
        self.assertIn("Unsafe scheme", str(cm.exception))

    def test_missing_hostname(self):
        with self.assertRaises(ValueError) as cm:
            validate_url("https://")
        self.assertIn("Missing hostname", str(cm.exception))

    def test_private_ips(self):
        """Hosts resolving into private ranges are refused."""
        private_ips = ['127.0.0.1', '10.0.1.2', '192.168.1.1', '172.16.0.1', '169.254.169.254']
        with patch('socket.getaddrinfo') as mock_dns:
            for ip in private_ips:
                mock_dns.return_value = [(0, 0, 0, 0, (ip, 80))]
                with self.assertRaises(ValueError) as cm:
                    validate_url("http://sitemap-host.example")
                self.assertIn("private IP", str(cm.exception))

    def test_any_private_answer_is_refused(self):
        with patch('socket.getaddrinfo') as mock_dns:
            mock_dns.return_value = [
                (0, 0, 0, 0, ('93.184.216.34', 443)),
                (0, 0, 0, 0, ('10.0.0.5', 443)),
            ]
            with self.assertRaises(ValueError):
                resolve_public_ip("mixed.example")

    def test_resolve_returns_first_public_address(self):
        with patch('socket.getaddrinfo') as mock_dns:
            mock_dns.return_value = [(0, 0, 0, 0, ('93.184.216.34', 443))]
            self.assertEqual(resolve_public_ip("example.org"), '93.184.216.34')

    def test_dns_resolution_failure(self):
        """DNS failure fails closed."""
        with patch('socket.getaddrinfo') as mock_dns:
            mock_dns.side_effect = socket.gaierror("Name or service not known")
            with self.assertRaises(ValueError) as cm:
                validate_url("https://nonexistent-domain.example")
            self.assertIn("DNS resolution failed", str(cm.exception))


class TestRobots(unittest.TestCase):
    ROBOTS = "\n".join([
        "# comment",
        "User-agent: googlebot",
        "User-agent: *",
        "Disallow: /private/",
        "Allow: /private/public",
        "",
        "User-agent: top-task-finder",
        "Disallow: /drafts",
        "",
        "User-agent: badbot",
        "Disallow: /",
        "Sitemap: https://example.org/sitemap_index.xml",
        "sitemap: https://example.org/news-sitemap.xml  # news",
    ])

    def test_grouped_user_agents_share_rules(self):
        rules = parse_robots(self.ROBOTS)
        self.assertEqual(rules["googlebot"], ["/private/"])
        self.assertEqual(rules["*"], ["/private/"])
        self.assertEqual(rules["top-task-finder"], ["/drafts"])

    def test_disallow_applies_to_wildcard_and_own_agent(self):
        rules = parse_robots(self.ROBOTS)
        self.assertEqual(robots_disallows("https://example.org/private/x", rules), (True, "/private/"))
        self.assertEqual(robots_disallows("https://example.org/drafts/1", rules), (True, "/drafts"))
        self.assertEqual(robots_disallows("https://example.org/about", rules), (False, None))

    def test_other_agents_do_not_apply(self):
        rules = parse_robots("User-agent: badbot\nDisallow: /\n")
        self.assertEqual(robots_disallows("https://example.org/", rules), (False, None))

    def test_sitemap_directives(self):
        self.assertEqual(
            parse_robots_sitemaps(self.ROBOTS),
            ["https://example.org/sitemap_index.xml", "https://example.org/news-sitemap.xml"],
        )


if __name__ == '__main__':
    unittest.main()
