"""
Module entry point for: python -m prelims_parser

Allows running the parser directly as a module:
    python -m prelims_parser parse <paper_pdf> [--answer-key <key_pdf>]
    python -m prelims_parser key <key_pdf>
    python -m prelims_parser info <pdf_path>
    python -m prelims_parser serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
