"""
Entry point for the WordPress to Airtable CMS migration tool.

Equivalent to the ``cms-migrator`` console script::

    python main.py migrate-blogs data/posts.xml
"""

from cms_migrator.cli import main

if __name__ == "__main__":
    main()
