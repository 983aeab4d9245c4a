from django.urls import path

from . import views

app_name = 'reservations'

urlpatterns = [
    path('bookings/', views.create_booking, name='create_booking'),
    path('bookings/<int:booking_id>/cancel/', views.cancel_booking, name='cancel_booking'),
    path('availability/', views.availability, name='availability'),
]
