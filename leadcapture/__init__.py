"""Lead capture API: landing-page form submissions into a Supabase table."""

__version__ = "1.0.0"
