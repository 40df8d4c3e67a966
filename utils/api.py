from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response


def parse_id(value, label='id'):
    """Path ids arrive as strings; anything but a plain integer is a 400"""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError({label: f"Invalid {label} in URL"})


def bad_request(detail):
    return Response({
        'success': False,
        'message': detail
    }, status=status.HTTP_400_BAD_REQUEST)


def not_found(message):
    return Response({
        'success': False,
        'message': message
    }, status=status.HTTP_404_NOT_FOUND)


def server_error(message='Server error'):
    return Response({
        'success': False,
        'message': message
    }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
