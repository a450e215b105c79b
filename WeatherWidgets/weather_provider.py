"""Weather provider abstraction - allows swapping different weather APIs."""
from abc import ABC, abstractmethod
from weather_data import WeatherSnapshot


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""
    
    @abstractmethod
    def fetch(self, lat: float, lon: float) -> WeatherSnapshot:
        """
        Fetch current weather for a coordinate.
        
        Args:
            lat: Latitude (-90 to 90)
            lon: Longitude (-180 to 180)
        
        Returns:
            WeatherSnapshot: Current conditions at the coordinate
            
        Raises:
            NetworkError: On transport or HTTP failure
            WeatherProviderError: If the response cannot be used
        """
        pass


class WeatherProviderError(Exception):
    """Exception raised when a weather provider fails."""
    pass


class NetworkError(WeatherProviderError):
    """The request never produced a usable HTTP response."""
    pass
