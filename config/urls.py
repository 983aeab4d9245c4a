"""
URL configuration for the Cabin Reservations project.
"""

from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Cabin Reservations Admin"
admin.site.site_title = "Admin Portal"
admin.site.index_title = "Seasons, rooms, pricing and refund policies"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('reservations.urls')),
]
