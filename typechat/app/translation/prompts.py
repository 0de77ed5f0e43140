from __future__ import annotations


def build_request_prompt(schema: str, request: str, type_name: str) -> str:
    return (
        "You are a service that translates user requests into JSON objects of type "
        f'"{type_name}" according to the following TypeScript definitions:\n'
        f"```\n{schema}\n```\n"
        "The following is a user request:\n"
        f'"""\n{request}\n"""\n'
        "The following is the user request translated into a JSON object with 2 spaces "
        "of indentation and no properties with the value undefined:\n"
    )


def build_repair_prompt(validation_error: str) -> str:
    return (
        "The JSON object is invalid for the following reason:\n"
        f'"""\n{validation_error}\n"""\n'
        "The following is a revised JSON object:\n"
    )


def append_repair(prompt: str, reply: str, validation_error: str) -> str:
    return f"{prompt}{reply}\n{build_repair_prompt(validation_error)}"
