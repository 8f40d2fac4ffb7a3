# Host integration package
#
# Provides:
#  - Application discovery from .app bundles (Info.plist, icons)
#  - ICNS -> PNG icon cache
#  - HTTP routes to list apps, stream icons and launch apps
