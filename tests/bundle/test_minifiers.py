from __future__ import annotations

from pkgscout.bundle.minifiers import AstMinifier


class TestAstMinifier:
    def test_compacts_whitespace(self) -> None:
        code = "var   total = 1 ;\n\n\nvar other = total + 2;\n"
        minified = AstMinifier().minify(code)
        assert minified is not None
        assert len(minified) < len(code)
        assert "\n\n" not in minified

    def test_globals_keep_their_names(self) -> None:
        minified = AstMinifier().minify("var exported = 1;\nfunction api(argumentName) { return argumentName; }\n")
        assert minified is not None
        assert "exported" in minified
        assert "api" in minified
        assert "argumentName" not in minified

    def test_without_obfuscation(self) -> None:
        minified = AstMinifier(obfuscate=False).minify("function f(longName) { return longName; }")
        assert minified is not None
        assert "longName" in minified

    def test_unparseable_returns_none(self) -> None:
        assert AstMinifier().minify("import x from 'y';") is None
        assert AstMinifier().minify("function (") is None
