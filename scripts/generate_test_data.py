import numpy as np
import cv2
import os
import sys

# Scope-style 2.39:1 picture letterboxed inside a UHD-width frame, scaled down
WIDTH = 384
HEIGHT = 216
TOP = 28
ROWS = 160
FRAMES = 12


def generate_rgb16_frames():
    """Generates letterboxed 16-bit RGB frames with a moving highlight."""
    frames = []
    ramp = np.linspace(4096, 40000, WIDTH).astype(np.uint16)
    for i in range(FRAMES):
        img = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint16)
        # Gradient picture area
        img[TOP:TOP + ROWS, :, 0] = ramp
        img[TOP:TOP + ROWS, :, 1] = ramp[::-1]
        img[TOP:TOP + ROWS, :, 2] = 12000 + i * 500

        # Moving specular highlight
        cx = 20 + i * 28
        cv2.circle(img, (cx, TOP + ROWS // 2), 10, (60000, 60000, 60000), -1)

        # Keep the bars uniform even if the circle overlapped them
        img[:TOP] = 0
        img[TOP + ROWS:] = 0
        frames.append(img)
    return frames


def main():
    out_dir = sys.argv[1] if len(sys.argv) > 1 else "test_data"
    os.makedirs(out_dir, exist_ok=True)
    for i, rgb in enumerate(generate_rgb16_frames()):
        path = os.path.join(out_dir, f"test_scope_{i:04d}.tif")
        cv2.imwrite(path, cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
        print(f"Generated {path}")
    print(f"Active area: -y {TOP} -d {ROWS}")


if __name__ == "__main__":
    main()
