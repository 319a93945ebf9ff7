#!/usr/bin/env python3
from __future__ import annotations

from argparse import ArgumentParser

from db.session import init_db
from db.storage import Storage

SAMPLE_TOPICS = [
    {
        "title": "AI Revolution in Healthcare: New Breakthroughs in Medical Diagnosis",
        "description": "New AI models show 95% accuracy in early cancer detection.",
        "source": "Tech News",
        "score": 95,
        "category": "Technology",
        "keywords": ["AI", "healthcare", "medical", "diagnosis", "cancer"],
    },
    {
        "title": "Climate Summit: World Leaders Announce Ambitious Green Energy Goals",
        "description": "Leaders announce new investments in renewable energy and carbon reduction targets.",
        "source": "World News",
        "score": 88,
        "category": "Environment",
        "keywords": ["climate", "summit", "renewable energy", "carbon", "environment"],
    },
    {
        "title": "Space Exploration Milestone: Mars Mission Discovers Signs of Ancient Water",
        "description": "The latest Mars rover found evidence of ancient water systems.",
        "source": "Science News",
        "score": 92,
        "category": "Science",
        "keywords": ["space", "Mars", "NASA", "water", "exploration"],
    },
    {
        "title": "Global Economy Update: Markets React to New Trade Agreements",
        "description": "Markets respond positively to trade agreements between major economies.",
        "source": "Business News",
        "score": 78,
        "category": "Business",
        "keywords": ["economy", "trade", "markets", "business", "growth"],
    },
    {
        "title": "Breakthrough in Quantum Computing: New Processor Achieves Record Performance",
        "description": "A new quantum processor solves complex problems in minutes instead of years.",
        "source": "Tech News",
        "score": 90,
        "category": "Technology",
        "keywords": ["quantum", "computing", "processor", "technology", "breakthrough"],
    },
]

API_CONFIGURATIONS = {
    "gemini": {"model": "gemini-1.5-flash", "temperature": 0.7, "maxTokens": 2048},
    "youtube": {"defaultCategory": "25", "defaultPrivacy": "public"},
    "drive": {"folderPrefix": "AutoTube_Videos"},
    "tts": {"voice": "en-IN-Standard-D", "languageCode": "en-IN", "speakingRate": 0.9, "pitch": -2.0},
}

# Inactive copies of the built-in triggers, kept as editable templates.
SCHEDULES = [
    ("dailyVideoTemplate", "30 12 * * *", "video_creation", "Create and publish the daily trending news video"),
    ("newsAnalysisTemplate", "0 */4 * * *", "news_analysis", "Analyze trending news every 4 hours"),
    ("cleanupTemplate", "0 2 * * *", "cleanup", "Clean up old files and data daily at 2 AM"),
]

SAMPLE_VIDEO = {
    "title": "Welcome to AutoTube - Your AI-Powered Video Creation System",
    "description": "A sample entry demonstrating the automated video creation pipeline.",
    "status": "completed",
    "trending_topic": "AI Video Automation",
    "trending_score": 85,
    "duration": "2:30",
}


def main() -> None:
    parser = ArgumentParser(description="Seed sample topics, configurations and schedules")
    parser.add_argument("--skip-video", action="store_true", help="Do not create the sample video")
    args = parser.parse_args()

    init_db()
    storage = Storage()

    for topic in SAMPLE_TOPICS:
        storage.create_trending_topic(**topic)
    print(f"[seed] trending topics: {len(SAMPLE_TOPICS)}")

    created = 0
    for service, config in API_CONFIGURATIONS.items():
        if storage.get_api_configuration(service) is None:
            storage.create_api_configuration(service=service, config=config)
            created += 1
    print(f"[seed] api configurations: {created}")

    created = 0
    for name, cron_expression, job_type, description in SCHEDULES:
        if storage.get_schedule(name) is None:
            storage.create_schedule(
                name=name,
                cron_expression=cron_expression,
                job_type=job_type,
                config={"description": description},
                is_active=False,
            )
            created += 1
    print(f"[seed] schedules: {created}")

    if not args.skip_video:
        video = storage.create_video(**SAMPLE_VIDEO)
        print(f"[seed] sample video: {video.id}")


if __name__ == "__main__":
    main()
