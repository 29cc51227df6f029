"""
Known SaaS vendors.

Each row is (id, canonical name, aliases, category). Aliases are lower-case and curated so that
substring containment is enough to recognise a vendor in an invoice header or a sender address.
"""

from __future__ import annotations

DEFAULT_SERVICES: tuple[tuple[str, str, tuple[str, ...], str], ...] = (
    # Infrastructure
    ("vercel", "Vercel", ("vercel inc", "vercel.com"), "infrastructure"),
    ("railway", "Railway", ("railway.app",), "infrastructure"),
    ("netlify", "Netlify", ("netlify.com",), "infrastructure"),
    (
        "aws",
        "AWS",
        ("amazon web services", "amazon.com services", "aws.amazon.com"),
        "infrastructure",
    ),
    ("google-cloud", "Google Cloud", ("google cloud", "gcp", "cloud.google.com"), "infrastructure"),
    ("azure", "Microsoft Azure", ("azure.com", "microsoft azure"), "infrastructure"),
    ("supabase", "Supabase", ("supabase.com", "supabase inc"), "infrastructure"),
    ("planetscale", "PlanetScale", ("planetscale.com",), "infrastructure"),
    ("mongodb", "MongoDB Atlas", ("mongodb.com", "mongodb inc", "atlas"), "infrastructure"),
    ("neon", "Neon", ("neon.tech", "neon database"), "infrastructure"),
    ("upstash", "Upstash", ("upstash.com",), "infrastructure"),
    ("cloudinary", "Cloudinary", ("cloudinary.com",), "infrastructure"),
    ("uploadthing", "UploadThing", ("uploadthing.com",), "infrastructure"),
    ("heroku", "Heroku", ("heroku.com", "salesforce heroku"), "infrastructure"),
    ("digitalocean", "DigitalOcean", ("digitalocean.com", "digital ocean"), "infrastructure"),
    ("render", "Render", ("render.com",), "infrastructure"),
    ("fly", "Fly.io", ("fly.io",), "infrastructure"),
    ("firebase", "Firebase", ("firebase.google.com", "google firebase"), "infrastructure"),
    # Domains
    ("namecheap", "Namecheap", ("namecheap.com", "namecheap inc"), "domains"),
    ("cloudflare", "Cloudflare", ("cloudflare.com", "cloudflare inc"), "domains"),
    ("porkbun", "Porkbun", ("porkbun.com",), "domains"),
    ("godaddy", "GoDaddy", ("godaddy.com",), "domains"),
    ("google-domains", "Google Domains", ("domains.google",), "domains"),
    # Identity
    ("clerk", "Clerk", ("clerk.com", "clerk.dev"), "identity"),
    ("auth0", "Auth0", ("auth0.com", "okta"), "identity"),
    # Payments
    ("stripe", "Stripe", ("stripe.com", "stripe inc", "stripe payments"), "payments"),
    ("lemonsqueezy", "Lemon Squeezy", ("lemonsqueezy.com",), "payments"),
    ("paddle", "Paddle", ("paddle.com",), "payments"),
    # Communications
    ("resend", "Resend", ("resend.com",), "communications"),
    ("sendgrid", "SendGrid", ("sendgrid.com", "twilio sendgrid"), "communications"),
    ("postmark", "Postmark", ("postmarkapp.com",), "communications"),
    ("twilio", "Twilio", ("twilio.com", "twilio inc"), "communications"),
    ("mailgun", "Mailgun", ("mailgun.com", "mailgun inc"), "communications"),
    ("intercom", "Intercom", ("intercom.com", "intercom inc"), "communications"),
    ("slack", "Slack", ("slack.com", "slack technologies"), "communications"),
    ("zoom", "Zoom", ("zoom.us", "zoom video"), "communications"),
    # Analytics and monitoring
    ("posthog", "PostHog", ("posthog.com",), "analytics"),
    ("plausible", "Plausible", ("plausible.io",), "analytics"),
    ("mixpanel", "Mixpanel", ("mixpanel.com",), "analytics"),
    ("sentry", "Sentry", ("sentry.io", "getsentry"), "analytics"),
    ("logrocket", "LogRocket", ("logrocket.com",), "analytics"),
    ("segment", "Segment", ("segment.com", "twilio segment"), "analytics"),
    ("amplitude", "Amplitude", ("amplitude.com",), "analytics"),
    ("datadog", "Datadog", ("datadoghq.com", "datadog.com", "datadoghq"), "analytics"),
    ("newrelic", "New Relic", ("newrelic.com",), "analytics"),
    # Developer tools
    ("openai", "OpenAI", ("openai.com", "open ai", "openai inc"), "devtools"),
    ("anthropic", "Anthropic", ("anthropic.com", "claude"), "devtools"),
    ("replicate", "Replicate", ("replicate.com",), "devtools"),
    ("github", "GitHub", ("github.com", "github inc"), "devtools"),
    ("linear", "Linear", ("linear.app",), "devtools"),
    ("algolia", "Algolia", ("algolia.com",), "devtools"),
    ("notion", "Notion", ("notion.so", "notion labs"), "devtools"),
    # Distribution
    ("apple-developer", "Apple Developer", ("developer.apple.com", "apple inc"), "distribution"),
    (
        "google-play",
        "Google Play Console",
        ("play.google.com", "google play developer"),
        "distribution",
    ),
    # Marketing
    ("google-ads", "Google Ads", ("ads.google.com", "google adwords", "adwords"), "marketing"),
    (
        "meta-business",
        "Meta Business Suite",
        ("business.facebook.com", "facebook ads", "instagram ads", "meta ads"),
        "marketing",
    ),
    ("tiktok-ads", "TikTok Ads", ("ads.tiktok.com", "tiktok for business"), "marketing"),
    (
        "linkedin-ads",
        "LinkedIn Ads",
        ("linkedin marketing", "linkedin campaign manager"),
        "marketing",
    ),
    ("canva", "Canva", ("canva.com", "canva pro", "canva teams"), "marketing"),
    ("figma", "Figma", ("figma.com", "figma inc"), "marketing"),
    ("buffer", "Buffer", ("buffer.com", "buffer app"), "marketing"),
    ("hootsuite", "Hootsuite", ("hootsuite.com",), "marketing"),
    ("ahrefs", "Ahrefs", ("ahrefs.com",), "marketing"),
    ("semrush", "SEMrush", ("semrush.com",), "marketing"),
    ("mailchimp", "Mailchimp", ("mailchimp.com", "intuit mailchimp"), "marketing"),
    ("hubspot", "HubSpot", ("hubspot.com", "hubspot inc"), "marketing"),
    ("zapier", "Zapier", ("zapier.com",), "marketing"),
)
