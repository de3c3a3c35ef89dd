"""Centralized mock data for development and testing.

Seeds the in-memory content source and media lookup when no real data
store is wired in.
"""

POSTS = [
    {
        "slug": "hello-world",
        "title": "Hello World",
        "excerpt": "First post on the new site.",
        "published_at": "2024-01-05T08:00:00+00:00",
        "category": "notes",
        "tags": ["meta"],
        "featured_image": "/p/a1b2c3",
    },
    {
        "slug": "async-python",
        "title": "Async Python in Practice",
        "excerpt": "Fan-out, fan-in and semaphores.",
        "published_at": "2024-03-18T10:30:00+00:00",
        "category": "tech/python",
        "tags": ["python", "asyncio"],
        "featured_image": "/p/d4e5f6",
    },
    {
        "slug": "cache-tags",
        "title": "Invalidating Caches with Tags",
        "excerpt": "Declarative invalidation for page blocks.",
        "published_at": "2024-06-02T14:00:00+00:00",
        "category": "tech",
        "tags": ["python", "caching"],
        "featured_image": None,
    },
    {
        "slug": "photo-walk",
        "title": "A Photo Walk",
        "excerpt": "Notes from a rainy afternoon.",
        "published_at": "2024-07-21T17:45:00+00:00",
        "category": "life",
        "tags": ["photography"],
        "featured_image": "/p/778899",
    },
]

CATEGORIES = [
    {"slug": "notes", "name": "Notes", "description": "Short notes", "parent": None},
    {"slug": "tech", "name": "Tech", "description": "Technical writing", "parent": None},
    {"slug": "tech/python", "name": "Python", "description": "Python posts", "parent": "tech"},
    {"slug": "life", "name": "Life", "description": "Everything else", "parent": None},
]

TAGS = [
    {"slug": "meta", "name": "Meta", "description": "About this site"},
    {"slug": "python", "name": "Python", "description": "The language"},
    {"slug": "asyncio", "name": "asyncio", "description": "Async I/O"},
    {"slug": "caching", "name": "Caching", "description": "Cache strategies"},
    {"slug": "photography", "name": "Photography", "description": "Pictures"},
]

PROJECTS = [
    {"slug": "block-runtime", "name": "Block Runtime", "description": "Page block resolution", "stars": 42},
    {"slug": "photo-archive", "name": "Photo Archive", "description": "Self-hosted gallery", "stars": 17},
]

FRIEND_LINKS = [
    {"name": "Example Blog", "url": "https://blog.example.com", "avatar": "/p/f00d01"},
    {"name": "Another Site", "url": "https://another.example.org", "avatar": None},
]

MEDIA_FILES = {
    "/p/a1b2c3": {"width": 1600, "height": 900, "blur": "data:image/webp;base64,UklGRh4AAABXRUJQ"},
    "/p/d4e5f6": {"width": 1200, "height": 800, "blur": "data:image/webp;base64,UklGRh4AAABXRUJR"},
    "/p/778899": {"width": 4032, "height": 3024, "blur": None},
    "/p/f00d01": {"width": 256, "height": 256, "blur": None},
}
