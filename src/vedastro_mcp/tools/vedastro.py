"""VedAstro tool catalog.

Birth-chart tools address VedAstro with
``Location/<lat>,<lon>/Time/<HH:MM>/<DD/MM/YYYY>/<+HH:MM>/Ayanamsa/RAMAN``.
The date keeps its slashes: VedAstro reads day, month and year as
separate path segments.

Join policies:
- get_astrology_raw_data, get_ashtakvarga_data: JoinPolicy.ALL
- get_general_astro_data: JoinPolicy.ALL_SETTLED
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field

from .base import JoinPolicy, ToolDefinition, join
from .client import AYANAMSA, VedAstroClient

# (endpoint, payload key) pairs that make up the general data summary
GENERAL_ASTRO_ENDPOINTS: tuple[tuple[str, str], ...] = (
    ("LocalMeanTime", "LocalMeanTime"),
    ("AyanamsaDegree", "AyanamsaDegree"),
    ("YoniKutaAnimal", "YoniKutaAnimal"),
    ("MarakaPlanetList", "MarakaPlanetList"),
    ("LagnaSignName", "LagnaSignName"),
    ("MoonSignName", "MoonSignName"),
    ("MoonConstellation", "MoonConstellation"),
    ("SunriseTime", "SunriseTime"),
    ("SunsetTime", "SunsetTime"),
    ("NithyaYoga", "NithyaYoga"),
    ("Karana", "Karana"),
    ("DayDurationHours", "DayDurationHours"),
    ("IsDayBirth", "IsDayBirth"),
    ("LunarDay", "LunarDay"),
    ("BirthVarna", "BirthVarna"),
    ("HoraAtBirth", "HoraAtBirth"),
    ("DayOfWeek", "DayOfWeek"),
    ("LordOfWeekday", "LordOfWeekday"),
    ("ShubKartariPlanets", "ShubKartariPlanets"),
    ("PaapaKartariPlanets", "PaapaKartariPlanets"),
    ("ShubKartariHouses", "ShubKartariHouses"),
    ("PaapaKartariHouses", "PaapaKartariHouses"),
    ("KujaDosaScore", "KujaDosaScore"),
    ("PanchaPakshiBirthBird", "PanchaPakshiBirthBird"),
)

INSTRUCTIONS = (
    "Vedic Astrology MCP Server powered by VedAstro.org. "
    "Provides horoscope predictions, compatibility/match reports, "
    "numerology predictions, raw planet/house data, general astro data, "
    "and ashtakvarga charts. "
    "All calculations use the Raman Ayanamsa system. "
    "Birth parameters: DD/MM/YYYY for dates, HH:MM for time, +HH:MM for timezone."
)


# =============================================================================
# Argument Models
# =============================================================================


class BirthChartArgs(BaseModel):
    """Birth time and place of one person."""

    latitude: str = Field(description="Birth location latitude (e.g., '19.0760' for Mumbai)")
    longitude: str = Field(description="Birth location longitude (e.g., '72.8777' for Mumbai)")
    birth_time: str = Field(description="Birth time in HH:MM 24-hour format (e.g., '14:30')")
    birth_date: str = Field(description="Birth date in DD/MM/YYYY format (e.g., '25/10/1992')")
    timezone: str = Field(
        description="Timezone offset in +HH:MM or -HH:MM format (e.g., '+05:30' for India)"
    )

    def location_time(self) -> str:
        return (
            f"Location/{self.latitude},{self.longitude}"
            f"/Time/{self.birth_time}/{self.birth_date}/{self.timezone}"
        )

    def time_location(self) -> str:
        """Full path suffix including the ayanamsa."""
        return f"{self.location_time()}/Ayanamsa/{AYANAMSA}"


class MatchReportArgs(BaseModel):
    """Birth details of both partners."""

    male_latitude: str = Field(description="Male birth location latitude (e.g., '28.61')")
    male_longitude: str = Field(description="Male birth location longitude (e.g., '77.21')")
    male_birth_time: str = Field(
        description="Male birth time in HH:MM 24-hour format (e.g., '08:30')"
    )
    male_birth_date: str = Field(
        description="Male birth date in DD/MM/YYYY format (e.g., '15/06/1990')"
    )
    male_timezone: str = Field(
        description="Male timezone offset in +HH:MM or -HH:MM format (e.g., '+05:30')"
    )
    female_latitude: str = Field(description="Female birth location latitude (e.g., '34.05')")
    female_longitude: str = Field(
        description="Female birth location longitude (e.g., '-118.24')"
    )
    female_birth_time: str = Field(
        description="Female birth time in HH:MM 24-hour format (e.g., '14:20')"
    )
    female_birth_date: str = Field(
        description="Female birth date in DD/MM/YYYY format (e.g., '22/09/1992')"
    )
    female_timezone: str = Field(
        description="Female timezone offset in +HH:MM or -HH:MM format (e.g., '-07:00')"
    )

    def male(self) -> BirthChartArgs:
        return BirthChartArgs(
            latitude=self.male_latitude,
            longitude=self.male_longitude,
            birth_time=self.male_birth_time,
            birth_date=self.male_birth_date,
            timezone=self.male_timezone,
        )

    def female(self) -> BirthChartArgs:
        return BirthChartArgs(
            latitude=self.female_latitude,
            longitude=self.female_longitude,
            birth_time=self.female_birth_time,
            birth_date=self.female_birth_date,
            timezone=self.female_timezone,
        )


class NameArgs(BaseModel):
    name: str = Field(
        description="Name to analyze (person, business, project, house number, etc.)"
    )


# =============================================================================
# Handlers
# =============================================================================


class VedAstroTools:
    """Tool handlers bound to one VedAstro client (and so one API key)."""

    def __init__(self, client: VedAstroClient) -> None:
        self.client = client

    async def horoscope_predictions(self, args: BirthChartArgs) -> Any:
        return await self.client.calculate(f"HoroscopePredictions/{args.time_location()}")

    async def match_report(self, args: MatchReportArgs) -> Any:
        path = (
            f"MatchReport/{args.male().location_time()}"
            f"/{args.female().location_time()}/Ayanamsa/{AYANAMSA}"
        )
        return await self.client.calculate(path)

    async def numerology_prediction(self, args: NameArgs) -> Any:
        name = quote(args.name, safe="")
        return await self.client.calculate(f"NameNumberPrediction/FullName/{name}")

    async def astrology_raw_data(self, args: BirthChartArgs) -> dict[str, Any]:
        suffix = args.time_location()
        return await join(
            {
                "PlanetData": self.client.calculate(
                    f"AllPlanetData/PlanetName/All/{suffix}", label="planet"
                ),
                "HouseData": self.client.calculate(
                    f"AllHouseData/HouseName/All/{suffix}", label="house"
                ),
            },
            JoinPolicy.ALL,
        )

    async def general_astro_data(self, args: BirthChartArgs) -> dict[str, Any]:
        suffix = args.time_location()

        async def fetch(endpoint: str, payload_key: str) -> Any:
            payload = await self.client.calculate(f"{endpoint}/{suffix}", label=endpoint)
            if not isinstance(payload, dict) or payload_key not in payload:
                raise KeyError(payload_key)
            return payload[payload_key]

        return await join(
            {key: fetch(endpoint, key) for endpoint, key in GENERAL_ASTRO_ENDPOINTS},
            JoinPolicy.ALL_SETTLED,
        )

    async def ashtakvarga_data(self, args: BirthChartArgs) -> dict[str, Any]:
        suffix = args.time_location()
        return await join(
            {
                "SarvashtakavargaChart": self.client.calculate(
                    f"SarvashtakavargaChart/{suffix}", label="sarva"
                ),
                "BhinnashtakavargaChart": self.client.calculate(
                    f"BhinnashtakavargaChart/{suffix}", label="bhinna"
                ),
            },
            JoinPolicy.ALL,
        )


def build_catalog(client: VedAstroClient) -> list[ToolDefinition]:
    """Create the tool definitions served by every engine."""
    tools = VedAstroTools(client)
    return [
        ToolDefinition(
            name="get_horoscope_predictions",
            description=(
                "Get Vedic astrology horoscope predictions for a person based on their "
                "birth time and location. Returns life predictions about personality, "
                "career, relationships, health, wealth, marriage, children, longevity, "
                "and more based on planetary positions, yogas, and house placements. "
                "Uses the Raman Ayanamsa system."
            ),
            arguments=BirthChartArgs,
            handler=tools.horoscope_predictions,
        ),
        ToolDefinition(
            name="get_match_report",
            description=(
                "Get a Vedic astrology compatibility/match report between two people. "
                "Returns Kuta score percentage and detailed predictions for "
                "all 16 Kuta factors (Dina, Gana, Mahendra, Stree Deergha, etc.). "
                "Each factor is rated as Good or Bad with detailed explanation. "
                "Uses the Raman Ayanamsa system."
            ),
            arguments=MatchReportArgs,
            handler=tools.match_report,
        ),
        ToolDefinition(
            name="get_numerology_prediction",
            description=(
                "Get a numerology prediction based on a name using the Chaldean system. "
                "Returns the name number, ruling planet, detailed prediction, and life "
                "aspect scores (Finance, Romance, Education, Health, Family, Growth, "
                "Career, Reputation, Spirituality, Luck). Works for person names, "
                "business names, project names, house numbers, or car numbers."
            ),
            arguments=NameArgs,
            handler=tools.numerology_prediction,
        ),
        ToolDefinition(
            name="get_astrology_raw_data",
            description=(
                "Get raw Vedic astrology data for all 9 planets and 12 houses. "
                "Returns detailed planet data (sign placement, constellation, house "
                "occupied, houses owned, lord of sign/constellation, degrees, retrograde "
                "status, etc.) and house data (sign, constellation, planets in house, "
                "lord, aspecting planets, etc.). Use this for detailed chart analysis "
                "when you need the underlying astronomical data. "
                "Uses the Raman Ayanamsa system."
            ),
            arguments=BirthChartArgs,
            handler=tools.astrology_raw_data,
            join_policy=JoinPolicy.ALL,
        ),
        ToolDefinition(
            name="get_general_astro_data",
            description=(
                "Get general Vedic astrology data for a birth chart including: "
                "Ascendant/Lagna, Moon Sign, Moon Constellation/Nakshatra, "
                "Sunrise/Sunset times, Nithya Yoga, Karana, Tithi (Lunar Day), "
                "Day/Night birth, Varna, Hora, Weekday & Lord, Ayanamsa degree, "
                "Kuja Dosa Score, Maraka Planets, Kartari Yoga planets/houses, "
                "Pancha Pakshi Birth Bird, and more. "
                "Returns raw values for 24 astrological properties. "
                "Uses the Raman Ayanamsa system."
            ),
            arguments=BirthChartArgs,
            handler=tools.general_astro_data,
            join_policy=JoinPolicy.ALL_SETTLED,
        ),
        ToolDefinition(
            name="get_ashtakvarga_data",
            description=(
                "Get Ashtakvarga charts for a birth chart. Returns both "
                "Sarvashtakavarga (combined strength of all planets across 12 signs) "
                "and Bhinnashtakavarga (individual planet contributions). "
                "Each chart contains rows per planet with 12 sign values and totals. "
                "Used for assessing planetary strength in transit analysis. "
                "Uses the Raman Ayanamsa system."
            ),
            arguments=BirthChartArgs,
            handler=tools.ashtakvarga_data,
            join_policy=JoinPolicy.ALL,
        ),
    ]
