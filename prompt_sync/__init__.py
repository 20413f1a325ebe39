"""prompt-sync — keep AI instruction and skills files in sync with hardlinks.

One master file (or skills tree) is declared in a TOML config and linked into
every vendor-specific location. Editing any linked path updates all of them.
"""

__version__ = "0.4.0"
