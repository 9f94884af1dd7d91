"""Tests for section link rewriting"""

import unittest

from edgehost.router.rewriter import is_html, prefix_link, rewrite_response_body, rewrite_html_links

PAGE = """<html><body>
<a href="/">Home</a>
<a href='/'>Home</a>
<a href="/about">About</a>
<a href='/contact?x=1'>Contact</a>
<a href="/#pricing">Pricing</a>
<a href="/blog/posts/1">Post</a>
<a href="//cdn.example.net/app.js">CDN</a>
<a href="https://other.example/">Other</a>
<a href="about">Relative</a>
<div data-href="/raw">Data</div>
</body></html>"""


class RewriteTests(unittest.TestCase):
    def setUp(self):
        self.result = rewrite_html_links(PAGE, "blog")

    def test_root_links(self):
        self.assertIn('<a href="/blog/">Home</a>', self.result)
        self.assertIn("<a href='/blog/'>Home</a>", self.result)

    def test_root_relative_links_get_prefix(self):
        self.assertIn('href="/blog/about"', self.result)
        self.assertIn("href='/blog/contact?x=1'", self.result)

    def test_fragment_links_drop_separator(self):
        self.assertIn('href="/blog#pricing"', self.result)
        self.assertNotIn("/blog/#", self.result)

    def test_prefixed_links_untouched(self):
        self.assertIn('href="/blog/posts/1"', self.result)
        self.assertNotIn("/blog/blog/", self.result)

    def test_other_links_untouched(self):
        self.assertIn('href="//cdn.example.net/app.js"', self.result)
        self.assertIn('href="https://other.example/"', self.result)
        self.assertIn('href="about"', self.result)
        self.assertIn('data-href="/raw"', self.result)

    def test_spacing_and_case_in_attribute(self):
        self.assertEqual(rewrite_html_links('<a HREF = "/x">', "shop"), '<a HREF = "/shop/x">')

    def test_idempotent(self):
        for subdomain in ("blog", "shop-2", "a.b", "", "x+y"):
            with self.subTest(subdomain=subdomain):
                once = rewrite_html_links(PAGE, subdomain)
                self.assertEqual(rewrite_html_links(once, subdomain), once)

    def test_prefix_link(self):
        self.assertEqual(prefix_link("", "blog"), "blog/")
        self.assertEqual(prefix_link("#top", "blog"), "blog#top")
        self.assertEqual(prefix_link("blogroll", "blog"), "blog/blogroll")
        self.assertIsNone(prefix_link("blog/x", "blog"))
        self.assertIsNone(prefix_link("blog#x", "blog"))
        self.assertIsNone(prefix_link("/cdn", "blog"))


class BodyTests(unittest.TestCase):
    def test_is_html(self):
        self.assertTrue(is_html("text/html; charset=utf-8"))
        self.assertFalse(is_html("application/json"))
        self.assertFalse(is_html(None))

    def test_rewrite_response_body_keeps_encoding(self):
        body = '<a href="/café">Café</a>'.encode("latin-1")
        result = rewrite_response_body(body, "latin-1", "blog")
        self.assertEqual(result, '<a href="/blog/café">Café</a>'.encode("latin-1"))

    def test_rewrite_response_body_defaults_to_utf8(self):
        self.assertEqual(rewrite_response_body(b'<a href="/">', None, "blog"), b'<a href="/blog/">')

    def test_invalid_bytes_are_preserved(self):
        body = b'<p>\xff\xfe caf\xe9</p><a href="/x">'
        result = rewrite_response_body(body, "utf-8", "blog")
        self.assertEqual(result, b'<p>\xff\xfe caf\xe9</p><a href="/blog/x">')
        untouched = b"<p>\xc3\x28 broken</p>"
        self.assertEqual(rewrite_response_body(untouched, "utf-8", "blog"), untouched)


if __name__ == "__main__":
    unittest.main()
