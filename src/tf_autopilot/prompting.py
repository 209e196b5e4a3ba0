from __future__ import annotations


def build_terraform_prompt(resource: str, specs: str) -> str:
    """Build the instruction sent to every generator backend.

    ``resource`` and ``specs`` are embedded verbatim.
    """
    return (
        "You are a Terraform expert. Generate Terraform code to provision the following:\n"
        "\n"
        f"Resource: {resource}\n"
        f"Specs: {specs}\n"
        "\n"
        "Only output valid Terraform code inside one block. Do not explain anything.\n"
        "The code should be production-ready and follow best practices.\n"
    )
