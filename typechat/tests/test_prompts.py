from __future__ import annotations

import unittest

from typechat.app.translation.prompts import (
    append_repair,
    build_repair_prompt,
    build_request_prompt,
)

SCHEMA = "export interface Counter {\n  a: number;\n}"


class PromptTemplateTest(unittest.TestCase):
    def test_request_prompt_literal(self) -> None:
        expected = (
            'You are a service that translates user requests into JSON objects of type "Counter" '
            "according to the following TypeScript definitions:\n"
            "```\n"
            "export interface Counter {\n"
            "  a: number;\n"
            "}\n"
            "```\n"
            "The following is a user request:\n"
            '"""\n'
            "count to one\n"
            '"""\n'
            "The following is the user request translated into a JSON object with 2 spaces of "
            "indentation and no properties with the value undefined:\n"
        )
        self.assertEqual(build_request_prompt(SCHEMA, "count to one", "Counter"), expected)

    def test_repair_prompt_literal(self) -> None:
        expected = (
            "The JSON object is invalid for the following reason:\n"
            '"""\n'
            "a: Input should be a valid integer\n"
            '"""\n'
            "The following is a revised JSON object:\n"
        )
        self.assertEqual(build_repair_prompt("a: Input should be a valid integer"), expected)

    def test_prompts_are_pure(self) -> None:
        first = build_request_prompt(SCHEMA, "count to one", "Counter")
        second = build_request_prompt(SCHEMA, "count to one", "Counter")
        self.assertEqual(first, second)
        self.assertEqual(build_repair_prompt("bad"), build_repair_prompt("bad"))

    def test_append_repair_grows_prompt(self) -> None:
        prompt = build_request_prompt(SCHEMA, "count to one", "Counter")
        grown = append_repair(prompt, '{"a": "one"}', "bad value")
        self.assertTrue(grown.startswith(prompt))
        self.assertEqual(
            grown,
            prompt + '{"a": "one"}\n' + build_repair_prompt("bad value"),
        )


if __name__ == "__main__":
    unittest.main()
