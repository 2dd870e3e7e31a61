"""Text-to-speech for English pronunciation."""

import logging
import platform
import subprocess
import tempfile
from pathlib import Path

from gtts import gTTS
from gtts.tts import gTTSError

logger = logging.getLogger(__name__)

LINUX_PLAYERS = [
    ["mpv", "--really-quiet"],
    ["mpg123", "-q"],
    ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"],
]


class TTSError(Exception):
    """Error during text-to-speech operation."""
    pass


class TextToSpeech:
    """Text-to-speech using Google TTS (gTTS).

    Generates an mp3 for the text and plays it with the system audio player.
    """

    def __init__(self, lang: str = "en", tld: str = "co.uk"):
        """
        Args:
            lang: Language code
            tld: Google domain selecting the accent, e.g. 'co.uk' for British
        """
        self.lang = lang
        self.tld = tld
        self._temp_dir = Path(tempfile.gettempdir()) / "vocabmaster-tts"
        self._temp_dir.mkdir(exist_ok=True)

    def speak(self, text: str, slow: bool = False) -> None:
        """Speak the given text.

        Raises:
            TTSError: If generating or playing the audio fails
        """
        if not text or not text.strip():
            return

        audio_file = self._temp_dir / ("speech_slow.mp3" if slow else "speech.mp3")
        try:
            gTTS(text=text.strip(), lang=self.lang, tld=self.tld, slow=slow).save(str(audio_file))
        except (gTTSError, ValueError, OSError) as e:
            raise TTSError(f"TTS failed: {e}") from e

        self._play_audio(audio_file)

    def speak_slow(self, text: str) -> None:
        """Speak the given text slowly (for learning)."""
        self.speak(text, slow=True)

    def _play_audio(self, audio_file: Path) -> None:
        system = platform.system()

        if system == "Darwin":
            commands = [["afplay"]]
        elif system == "Linux":
            commands = LINUX_PLAYERS
        elif system == "Windows":
            commands = [["powershell", "-c", f"(New-Object Media.SoundPlayer '{audio_file}').PlaySync()"]]
        else:
            raise TTSError(f"Unsupported platform: {system}")

        for command in commands:
            args = command if system == "Windows" else [*command, str(audio_file)]
            try:
                subprocess.run(args, check=True, capture_output=True)
                return
            except FileNotFoundError:
                continue
            except subprocess.CalledProcessError as e:
                raise TTSError(f"Audio playback failed: {e}") from e

        raise TTSError("No audio player found. Install mpv, mpg123, or ffplay.")

    def cleanup(self) -> None:
        """Remove generated audio files."""
        for f in self._temp_dir.glob("*.mp3"):
            try:
                f.unlink()
            except OSError as e:
                logger.debug("Could not remove %s: %s", f, e)
