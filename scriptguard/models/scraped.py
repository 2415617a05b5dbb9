"""
Scraped site models - the read-only input produced by the external scraper.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ScrapedData(BaseModel):
    """
    Site facts extracted from a product website.
    Accepts both snake_case and the scraper's camelCase keys (ogTitle, bodyText).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str = ""
    title: str = ""
    description: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    headings: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list, description="Candidate feature text")
    body_text: str = ""
    colors: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list, description="Entries formatted as 'label: href'")
    domain: str = ""
    structured_hints: list[str] = Field(default_factory=list)

    @property
    def domain_root(self) -> str:
        """First label of the domain, without www."""
        bare = self.domain.lower()
        if bare.startswith("www."):
            bare = bare[4:]
        return bare.split(".")[0] if bare else ""
