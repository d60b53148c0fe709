"""AumAI SkillPublish: publish skill packages to the registry from CI."""

__version__ = "0.1.0"
